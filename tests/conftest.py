"""Test fixtures for datamanifest: isolated manifests, fake network and fake subprocesses."""

from __future__ import annotations

import io
import subprocess
import tarfile
import zipfile
from pathlib import Path
from typing import Callable, Dict, List
from urllib.error import URLError

import pytest

from datamanifest import api
from datamanifest.manifest import Manifest
from datamanifest.transport import base as transport_base
from datamanifest.transport import url as transport_url


def make_zip(members: Dict[str, bytes]) -> bytes:
    """Return the bytes of a zip archive holding ``members``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, payload in members.items():
            archive.writestr(name, payload)
    return buffer.getvalue()


def make_tar_gz(members: Dict[str, bytes]) -> bytes:
    """Return the bytes of a gzipped tar archive holding ``members``."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, payload in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            archive.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()


class FakeWeb:
    """Stand-in for ``urlopen`` serving canned payloads and recording requests."""

    def __init__(self) -> None:
        self.payloads: Dict[str, bytes] = {}
        self.requests: List[str] = []

    def __call__(self, request):
        url = request.full_url
        self.requests.append(url)
        if url not in self.payloads:
            raise URLError(f"no route to {url}")
        return io.BytesIO(self.payloads[url])


class FakeRunner:
    """Stand-in for ``subprocess.run`` that mimics git and rsync side effects."""

    def __init__(self) -> None:
        self.commands: List[List[str]] = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(list(cmd))
        if cmd[:2] == ["git", "clone"]:
            destination = Path(cmd[-1])
            destination.mkdir(parents=True)
            (destination / "README.md").write_text("cloned\n")
        elif cmd[0] == "rsync":
            source, parent = cmd[-2], Path(cmd[-1])
            produced = parent / source.rstrip("/").rsplit("/", 1)[-1]
            produced.write_text("synced\n")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


@pytest.fixture()
def datasets_root(tmp_path: Path) -> Path:
    """Root folder fetched datasets are written to."""
    root = tmp_path / "datasets"
    root.mkdir()
    return root


@pytest.fixture()
def manifest(tmp_path: Path, datasets_root: Path) -> Manifest:
    """Empty manifest persisted to a TOML file inside ``tmp_path``."""
    return Manifest(datasets_path=datasets_root, manifest_file=tmp_path / "datasets.toml")


@pytest.fixture()
def fake_web(monkeypatch: pytest.MonkeyPatch) -> FakeWeb:
    web = FakeWeb()
    monkeypatch.setattr(transport_url, "urlopen", web)
    return web


@pytest.fixture()
def fake_runner(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr(transport_base.subprocess, "run", runner)
    return runner


@pytest.fixture()
def local_source(tmp_path: Path) -> Path:
    """A small folder on the local filesystem to register with ``file://``."""
    source = tmp_path / "source" / "survey"
    (source / "nested").mkdir(parents=True)
    (source / "table.csv").write_text("a,b\n1,2\n")
    (source / "nested" / "notes.txt").write_text("hello\n")
    return source


@pytest.fixture()
def clean_default_manifest():
    api.reset_default_manifest()
    yield
    api.reset_default_manifest()


@pytest.fixture()
def build_zip() -> Callable[[Dict[str, bytes]], bytes]:
    return make_zip


@pytest.fixture()
def build_tar_gz() -> Callable[[Dict[str, bytes]], bytes]:
    return make_tar_gz
