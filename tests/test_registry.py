"""Registration, naming and conflict resolution."""

from __future__ import annotations

import pytest

from datamanifest.core.model import DownloadEntry, RepositoryEntry
from datamanifest.errors import (
    DuplicateConflictError,
    DuplicateNameError,
    IdentityMismatchError,
    ParseError,
)
from datamanifest.manifest import Manifest
from datamanifest.registry import build_entry, repository_name, update_entry
from datamanifest.transport import TransportDispatcher


def test_register_derives_key_and_name(manifest: Manifest) -> None:
    name, entry = manifest.register("https://example.org/data/file.csv")
    assert isinstance(entry, DownloadEntry)
    assert entry.key == "example.org/data/file.csv"
    assert name == "example.org/data/file"
    assert manifest[name] is entry


@pytest.mark.parametrize(
    ("uri", "expected"),
    [
        ("https://github.com/org/repo.git", "org/repo"),
        ("git@github.com:org/repo.git", "org/repo"),
        ("https://github.com/org/repo/tree/main", "org/repo"),
        ("https://gitlab.example.com/team/project.git", "team/project"),
        ("https://example.com/team/project.git", "example.com/team/project"),
        (
            "https://github.com/jesstierney/lgmDA/archive/refs/tags/v2.1.zip",
            "github.com/jesstierney/lgmDA/archive/refs/tags/v2.1",
        ),
    ],
)
def test_derived_names(manifest: Manifest, uri: str, expected: str) -> None:
    name, _ = manifest.register(uri)
    assert name == expected


def test_repository_name_requires_two_segments() -> None:
    assert repository_name("github.com", "/org") is None
    assert repository_name("github.com", "/org/repo") == "org/repo"
    assert repository_name("example.org", "/org/repo") is None


def test_git_archive_is_a_download(manifest: Manifest) -> None:
    _, entry = manifest.register("https://github.com/jesstierney/lgmDA/archive/refs/tags/v2.1.zip")
    assert isinstance(entry, DownloadEntry)
    assert entry.format == "zip"


def test_ssh_shorthand_builds_repository_entry(manifest: Manifest) -> None:
    _, entry = manifest.register("git@github.com:org/repo.git", branch="main")
    assert isinstance(entry, RepositoryEntry)
    assert entry.scheme == "git"
    assert entry.host == "github.com"
    assert entry.branch == "main"
    assert entry.key == "github.com/org/repo.git"


def test_branch_ignored_for_plain_download(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger="datamanifest.registry"):
        entry = build_entry("https://example.org/data.zip", branch="main", extract=True)
    assert isinstance(entry, DownloadEntry)
    assert entry.extract is True
    assert entry.format == "zip"
    assert "Ignoring branch 'main'" in caplog.text
    dispatcher = TransportDispatcher(hostname="workstation")
    assert dispatcher.select(entry, entry.scheme).name == "url"


def test_uri_version_wins_over_explicit_version() -> None:
    entry = build_entry("https://example.org/p#v1", version="v2")
    assert entry.version == "v1"
    assert entry.key == "example.org/p#v1"


def test_explicit_version_is_appended_to_key() -> None:
    entry = build_entry("https://example.org/p", version="3")
    assert entry.key == "example.org/p#3"


def test_explicit_key_is_kept() -> None:
    entry = build_entry("https://example.org/p.csv", key="custom/place.csv")
    assert entry.key == "custom/place.csv"


def test_extract_dropped_for_unknown_format() -> None:
    entry = build_entry("https://example.org/table.csv", extract=True)
    assert isinstance(entry, DownloadEntry)
    assert entry.extract is False


def test_build_entry_from_fields() -> None:
    entry = build_entry(scheme="https", host="example.org", path="/bundle.tar.gz", extract=True)
    assert entry.uri == "https://example.org/bundle.tar.gz"
    assert entry.format == "tar.gz"
    assert entry.extract is True


def test_build_entry_without_location_fails() -> None:
    with pytest.raises(ParseError):
        build_entry(scheme="https")


def test_duplicate_registration_is_noop(manifest: Manifest, monkeypatch: pytest.MonkeyPatch) -> None:
    first = manifest.register("https://example.org/a.csv", name="a")
    writes = []
    monkeypatch.setattr(manifest, "save", lambda path=None: writes.append(path))
    second = manifest.register("https://example.org/a.csv", name="a")
    assert second[0] == "a"
    assert second[1] is first[1]
    assert writes == []
    assert len(manifest) == 1


def test_duplicate_without_name_reuses_existing(manifest: Manifest) -> None:
    manifest.register("https://example.org/a.csv", name="alpha")
    name, _ = manifest.register("https://example.org/a.csv")
    assert name == "alpha"


def test_rename_requires_overwrite(manifest: Manifest) -> None:
    manifest.register("https://example.org/a.csv", name="a")
    with pytest.raises(DuplicateNameError):
        manifest.register("https://example.org/a.csv", name="b")
    assert list(manifest) == ["a"]

    name, _ = manifest.register("https://example.org/a.csv", name="b", overwrite=True)
    assert name == "b"
    assert list(manifest) == ["b"]


def test_conflicting_versions(manifest: Manifest) -> None:
    manifest.register("https://h/p", name="foo", version="1")
    with pytest.raises(DuplicateConflictError) as excinfo:
        manifest.register("https://h/p", name="foo", version="2")
    assert manifest["foo"].version == "1"
    assert excinfo.value.old_entry.version == "1"
    assert excinfo.value.new_entry.version == "2"

    manifest.register("https://h/p", name="foo", version="2", overwrite=True)
    assert manifest.get("foo").version == "2"
    assert len(manifest) == 1


def test_conflict_error_explains_remedy(manifest: Manifest, datasets_root) -> None:
    manifest.register("https://example.org/one.csv", name="data")
    with pytest.raises(DuplicateConflictError) as excinfo:
        manifest.register("https://example.org/two.csv", name="data")
    error = excinfo.value
    assert error.old_path == datasets_root / "example.org/one.csv"
    assert error.new_path == datasets_root / "example.org/two.csv"
    assert error.stale_data is False
    message = str(error)
    assert "overwrite=True" in message
    assert str(error.old_path) in message and str(error.new_path) in message
    assert manifest["data"].uri == "https://example.org/one.csv"


def test_conflict_flags_stale_data(manifest: Manifest, datasets_root) -> None:
    manifest.register("https://example.org/one.csv", name="data")
    for relative in ("example.org/one.csv", "example.org/two.csv"):
        target = datasets_root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("x")
    with pytest.raises(DuplicateConflictError) as excinfo:
        manifest.register("https://example.org/two.csv", name="data")
    assert excinfo.value.stale_data is True
    assert "remove the stale copy" in str(excinfo.value)


def test_identity_mismatch(manifest: Manifest) -> None:
    old = build_entry("https://example.org/x.csv")
    new = build_entry("https://example.org/y.csv")
    with pytest.raises(IdentityMismatchError):
        update_entry(manifest, "x", old, "y", new)


def test_parse_error_leaves_manifest_untouched(manifest: Manifest) -> None:
    manifest.register("https://example.org/a.csv", name="a")
    with pytest.raises(ParseError):
        manifest.register("not a uri")
    with pytest.raises(ParseError):
        manifest.register("")
    assert list(manifest) == ["a"]


def test_failed_write_rolls_back(manifest: Manifest, monkeypatch: pytest.MonkeyPatch) -> None:
    manifest.register("https://example.org/a.csv", name="a")

    def _broken_save(path=None):
        raise OSError("disk full")

    monkeypatch.setattr(manifest, "save", _broken_save)
    with pytest.raises(OSError):
        manifest.register("https://example.org/b.csv", name="b")
    assert list(manifest) == ["a"]


def test_registration_is_persisted(manifest: Manifest) -> None:
    manifest.register("https://example.org/a.csv", name="a", doi="10.1/A")
    text = manifest.manifest_file.read_text()
    assert "[a]" in text
    assert 'doi = "10.1/A"' in text
