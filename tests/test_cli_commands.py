"""End-to-end CLI commands against a local dataset."""

from __future__ import annotations

from pathlib import Path
from typing import List

from typer.testing import CliRunner

from datamanifest.cli import app
from datamanifest.utils.io import read_records


def _invoke(tmp_path: Path, args: List[str]):
    runner = CliRunner()
    common = ["--manifest", str(tmp_path / "datasets.toml"), "--root", str(tmp_path / "root")]
    return runner.invoke(app, [*common, *args])


def test_add_fetch_verify(tmp_path: Path, local_source: Path) -> None:
    result = _invoke(tmp_path, ["add", local_source.as_uri(), "--name", "survey", "--alias", "sv"])
    assert result.exit_code == 0, result.output
    assert read_records(tmp_path / "datasets.toml")["survey"]["aliases"] == ["sv"]

    result = _invoke(tmp_path, ["fetch"])
    assert result.exit_code == 0, result.output
    assert "survey" in result.output

    result = _invoke(tmp_path, ["verify", "sv"])
    assert result.exit_code == 0, result.output
    assert "OK" in result.output
    assert read_records(tmp_path / "datasets.toml")["survey"]["sha256"]


def test_path_and_search(tmp_path: Path) -> None:
    assert _invoke(tmp_path, ["add", "https://example.org/a.csv", "--name", "alpha"]).exit_code == 0

    result = _invoke(tmp_path, ["path", "alpha"])
    assert result.exit_code == 0, result.output
    assert result.output.strip().endswith("a.csv")

    result = _invoke(tmp_path, ["search", "alp", "--partial"])
    assert result.exit_code == 0
    assert "alpha" in result.output

    result = _invoke(tmp_path, ["search", "beta"])
    assert result.exit_code == 1


def test_list_shows_datasets(tmp_path: Path) -> None:
    _invoke(tmp_path, ["add", "https://example.org/a.csv", "--name", "alpha", "--doi", "10.1/A"])
    result = _invoke(tmp_path, ["list"])
    assert result.exit_code == 0, result.output
    assert "alpha" in result.output


def test_conflict_exits_with_error(tmp_path: Path) -> None:
    assert _invoke(tmp_path, ["add", "https://example.org/a.csv", "--name", "alpha"]).exit_code == 0
    result = _invoke(tmp_path, ["add", "https://example.org/b.csv", "--name", "alpha"])
    assert result.exit_code == 1
    assert "DuplicateConflictError" in result.output


def test_fetch_failure_exit_code(tmp_path: Path, fake_web) -> None:
    _invoke(tmp_path, ["add", "https://example.org/missing.csv", "--name", "missing"])
    result = _invoke(tmp_path, ["fetch", "missing"])
    assert result.exit_code == 1
    assert "missing" in result.output


def test_unknown_dataset(tmp_path: Path) -> None:
    result = _invoke(tmp_path, ["path", "nothing"])
    assert result.exit_code == 1
    assert "NotFoundError" in result.output
