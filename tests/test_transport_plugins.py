from __future__ import annotations

from pathlib import Path
from typing import Iterator, Type

import pytest

from datamanifest.core.model import BaseEntry
from datamanifest.errors import TransportConflictError
from datamanifest.registry import build_entry
from datamanifest.transport import TransportDispatcher
from datamanifest.transport import registry
from datamanifest.transport.base import Transport


class _DummyEntryPoint:
    group = "datamanifest.transports"

    def __init__(self, name: str, target) -> None:
        self.name = name
        self._target = target

    def load(self):
        return self._target


class _EntryPointCollection(list):
    def select(self, *, group: str) -> Iterator[_DummyEntryPoint]:  # type: ignore[override]
        return (entry for entry in self if entry.group == group)


class _S3Transport(Transport):
    name = "s3-plugin"
    priority = 5
    schemes = ("s3",)

    def handles(self, entry: BaseEntry, scheme: str) -> bool:
        return scheme == "s3"

    def fetch(self, entry: BaseEntry, destination: Path, scheme: str) -> None:
        destination.write_text(f"from {entry.uri}")


@pytest.fixture
def reset_registry(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(registry, "_REGISTERED_TRANSPORTS", dict(registry._REGISTERED_TRANSPORTS))
    monkeypatch.setattr(registry, "_ENTRYPOINTS_LOADED", False)
    yield


def test_builtin_transports_in_priority_order() -> None:
    names = registry.available_transports()
    assert names.index("git") < names.index("rsync") < names.index("local") < names.index("url")
    assert names[-1] == "url"


def test_load_transport_plugins_registers_entry_points(monkeypatch: pytest.MonkeyPatch, reset_registry) -> None:
    monkeypatch.setattr(
        registry.metadata,
        "entry_points",
        lambda: _EntryPointCollection([_DummyEntryPoint("s3", _S3Transport)]),
    )

    registry.load_transport_plugins(force=True)
    transports = registry.available_transports()
    assert transports[0] == "s3-plugin"


def test_load_transport_plugins_accepts_factory(monkeypatch: pytest.MonkeyPatch, reset_registry) -> None:
    def factory() -> Type[Transport]:
        return _S3Transport

    monkeypatch.setattr(
        registry.metadata,
        "entry_points",
        lambda: _EntryPointCollection([_DummyEntryPoint("s3", factory)]),
    )

    registry.load_transport_plugins(force=True)
    names = [transport_cls.name for transport_cls in registry.iter_transports()]
    assert "s3-plugin" in names


def test_plugin_ignored_when_not_a_transport(monkeypatch: pytest.MonkeyPatch, reset_registry) -> None:
    monkeypatch.setattr(
        registry.metadata,
        "entry_points",
        lambda: _EntryPointCollection([_DummyEntryPoint("broken", object())]),
    )

    registry.load_transport_plugins(force=True)
    assert "broken" not in registry.available_transports()


def test_dispatcher_uses_plugin(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, reset_registry) -> None:
    monkeypatch.setattr(
        registry.metadata,
        "entry_points",
        lambda: _EntryPointCollection([_DummyEntryPoint("s3", _S3Transport)]),
    )
    registry.load_transport_plugins(force=True)

    entry = build_entry("s3://bucket/archive/data.csv")
    destination = tmp_path / "bucket" / "archive" / "data.csv"
    TransportDispatcher(hostname="workstation").fetch(entry, destination)
    assert destination.read_text() == "from s3://bucket/archive/data.csv"


class _ShadowUrlTransport(_S3Transport):
    name = "shadow-url"
    priority = 100
    schemes = ("https",)


class _RenamedRsync(_S3Transport):
    name = "rsync"
    priority = 25


def test_register_rejects_same_priority_scheme_overlap(reset_registry) -> None:
    with pytest.raises(TransportConflictError, match="both handle https at priority 100"):
        registry.register_transport(_ShadowUrlTransport)
    assert "shadow-url" not in registry.available_transports()


def test_register_rejects_taken_name(reset_registry) -> None:
    with pytest.raises(TransportConflictError, match="'rsync' is already taken"):
        registry.register_transport(_RenamedRsync)
    assert registry.find_conflict(_S3Transport) is None


def test_register_replace_swaps_rival(reset_registry) -> None:
    registry.register_transport(replace=True)(_ShadowUrlTransport)
    names = registry.available_transports()
    assert "shadow-url" in names
    assert "url" not in names


def test_conflicting_plugin_is_skipped(
    monkeypatch: pytest.MonkeyPatch, reset_registry, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(
        registry.metadata,
        "entry_points",
        lambda: _EntryPointCollection([_DummyEntryPoint("shadow", _ShadowUrlTransport)]),
    )
    with caplog.at_level("WARNING", logger="datamanifest.transport.registry"):
        registry.load_transport_plugins(force=True)
    assert "Skipping transport entry point 'shadow'" in caplog.text
    assert registry.available_transports()[-1] == "url"
