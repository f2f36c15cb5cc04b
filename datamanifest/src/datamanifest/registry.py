"""Entry registration: candidate building, naming and conflict resolution."""

from __future__ import annotations

import logging
import posixpath
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Tuple

from datamanifest.core.keys import build_key, infer_format, is_compressed_format
from datamanifest.core.model import BaseEntry, DownloadEntry, Entry, RepositoryEntry
from datamanifest.core.uri import parse_uri
from datamanifest.errors import (
    DuplicateConflictError,
    DuplicateNameError,
    IdentityMismatchError,
    ParseError,
)
from datamanifest.search import find_by_key

if TYPE_CHECKING:  # pragma: no cover
    from datamanifest.manifest import Manifest

LOG = logging.getLogger(__name__)

GIT_HOSTS = ("github.com", "gitlab.com", "bitbucket.org", "codeberg.org")
GIT_SCHEMES = ("git", "ssh+git")

ENTRY_OPTIONS = (
    "scheme",
    "host",
    "path",
    "version",
    "branch",
    "doi",
    "aliases",
    "key",
    "sha256",
    "skip_checksum",
    "skip_download",
    "extract",
    "format",
)
LEGACY_URI_FIELDS = ("downloads", "url", "remote")
LEGACY_IGNORED_FIELDS = ("folder", "type")


def is_git_host(host: str) -> bool:
    """Return True for well-known git hosting domains and ``gitlab.*`` hosts."""
    host = (host or "").lower()
    return host in GIT_HOSTS or host.split(".")[0] == "gitlab"


def is_repository_location(scheme: str, path: str) -> bool:
    """Return True if ``scheme`` and ``path`` point at a git repository to clone."""
    return scheme in GIT_SCHEMES or (scheme == "https" and path.endswith(".git"))


def _has_file_extension(segment: str) -> bool:
    _, ext = posixpath.splitext(segment)
    return any(char.isalpha() for char in ext[1:])


def _strip_extension(key: str) -> str:
    base, sep, version = key.partition("#")
    if "/" in base:
        fmt = infer_format(base)
        if fmt:
            base = base[: -(len(fmt) + 1)]
        elif _has_file_extension(posixpath.basename(base)):
            base = posixpath.splitext(base)[0]
    return base + sep + version


def repository_name(host: str, path: str) -> Optional[str]:
    """Return ``owner/repo`` when ``host``/``path`` look like a hosted repository.

    The path must start with two non-empty segments. Longer paths qualify only
    while their last segment is not a file name (``org/repo/tree/main`` does,
    ``org/repo/archive/refs/tags/v2.1.zip`` does not).
    """
    if not is_git_host(host):
        return None
    segments = [segment for segment in (path or "").split("/") if segment]
    if len(segments) < 2:
        return None
    if len(segments) > 2 and _has_file_extension(segments[-1]):
        return None
    owner, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return f"{owner}/{repo}"


def derive_name(entry: BaseEntry) -> str:
    """Return the default dataset name for ``entry``."""
    name = repository_name(entry.host, entry.path)
    if name:
        return name
    return _strip_extension(entry.key or build_key(entry))


def build_uri(scheme: str, host: str, path: str, version: str = "") -> str:
    """Assemble a URI from its decomposed fields."""
    uri = f"{scheme}://{host}"
    if path:
        uri += "/" + path.strip("/")
    if version:
        uri += f"#{version}"
    return uri


def build_entry(
    uri: Optional[str] = None,
    *,
    scheme: str = "",
    host: str = "",
    path: str = "",
    version: str = "",
    branch: str = "",
    doi: str = "",
    aliases: Optional[Iterable[str]] = None,
    key: str = "",
    sha256: str = "",
    skip_checksum: bool = False,
    skip_download: bool = False,
    extract: bool = False,
    format: str = "",
) -> Entry:
    """Build a candidate entry from a URI (or decomposed fields) and options.

    Archive format comes from ``format``, the ``?format=`` query or the path
    extension, in that order. ``extract`` is dropped unless the format is a
    known archive type.
    """
    if uri:
        parsed = parse_uri(uri)
        scheme, host, path = parsed.scheme, parsed.host, parsed.path
        if parsed.version:
            if version and version != parsed.version:
                LOG.warning(
                    "Version '%s' conflicts with version '%s' encoded in %s; using the URI's.",
                    version,
                    parsed.version,
                    uri,
                )
            version = parsed.version
        fmt = format or parsed.format or infer_format(path)
        uri = uri.strip()
    else:
        if not scheme or not (host or path):
            raise ParseError("Provide a uri, or a scheme together with a host and/or path.")
        path = path.rstrip("/")
        uri = build_uri(scheme, host, path, version)
        fmt = format or infer_format(path)

    common: dict = {
        "uri": uri,
        "scheme": scheme,
        "host": host,
        "path": path,
        "version": version or "",
        "doi": doi or "",
        "aliases": list(aliases or []),
        "sha256": sha256 or "",
        "skip_checksum": skip_checksum,
        "skip_download": skip_download,
    }
    entry: Entry
    if is_repository_location(scheme, path):
        if extract:
            LOG.debug("Ignoring extract=True for git repository %s", uri)
        entry = RepositoryEntry(branch=branch or "", **common)
    else:
        if branch:
            LOG.warning("Ignoring branch '%s' for %s: not a git repository location.", branch, uri)
        if extract and not is_compressed_format(fmt):
            LOG.info("Not extracting %s: '%s' is not a supported archive format.", uri, fmt or "unknown")
            extract = False
        entry = DownloadEntry(extract=extract, format=fmt, **common)
    entry.key = key or build_key(entry)
    return entry


def _shares_identity(old_name: str, old_entry: BaseEntry, new_name: str, new_entry: BaseEntry) -> bool:
    return (
        old_entry.key == new_entry.key
        or old_entry.uri == new_entry.uri
        or old_name == new_name
        or bool(old_entry.version and old_entry.version == new_entry.version)
    )


def _conflict_error(
    manifest: "Manifest", old_name: str, old_entry: Entry, new_name: str, new_entry: Entry
) -> DuplicateConflictError:
    old_path = manifest.resolve_path(old_entry)
    new_path = manifest.resolve_path(new_entry)
    stale = old_path.exists() and new_path.exists()
    lines = [
        f"Dataset '{new_name}' conflicts with existing dataset '{old_name}'.",
        f"Existing entry ('{old_name}', path {old_path}):",
        str(old_entry),
        f"New entry ('{new_name}', path {new_path}):",
        str(new_entry),
    ]
    if stale and old_path != new_path:
        lines.append(
            f"Both {old_path} and {new_path} exist on disk; after overwriting, remove the stale copy manually."
        )
    elif stale:
        lines.append(f"Data already exists at {new_path}; it may not match the new entry.")
    lines.append("Pass overwrite=True to replace the existing entry, or register under a different name or key.")
    return DuplicateConflictError(
        "\n".join(lines),
        old_name=old_name,
        old_entry=old_entry,
        new_name=new_name,
        new_entry=new_entry,
        old_path=old_path,
        new_path=new_path,
        stale_data=stale,
    )


def update_entry(
    manifest: "Manifest",
    old_name: str,
    old_entry: Entry,
    new_name: str,
    new_entry: Entry,
    overwrite: bool = False,
) -> Tuple[str, Entry]:
    """Reconcile a candidate entry with an existing one.

    Identical entries under the same name are a no-op. Identical entries under
    a new name are a rename, and differing entries an update; both need
    ``overwrite=True``. On-disk content is never deleted here.
    """
    if not _shares_identity(old_name, old_entry, new_name, new_entry):
        msg = (
            f"Refusing to merge '{new_name}' into '{old_name}': the entries share no key, uri, "
            f"version or name.\nExisting: {old_entry.repr_short()}\nNew: {new_entry.repr_short()}"
        )
        raise IdentityMismatchError(msg)

    entry: Entry
    if old_entry.same_content(new_entry):
        if old_name == new_name:
            LOG.debug("Dataset '%s' is already registered.", old_name)
            return old_name, old_entry
        if not overwrite:
            msg = (
                f"Dataset '{new_name}' is already registered as '{old_name}' (key {old_entry.key}). "
                f"Use the name '{old_name}', or pass overwrite=True to rename it to '{new_name}'."
            )
            raise DuplicateNameError(msg)
        entry = old_entry
        LOG.info("Renaming dataset '%s' to '%s'.", old_name, new_name)
    else:
        if not overwrite:
            raise _conflict_error(manifest, old_name, old_entry, new_name, new_entry)
        entry = new_entry
        LOG.info("Updating dataset '%s' (previously '%s').", new_name, old_name)

    with manifest.transaction():
        if old_name != new_name:
            manifest.entries.pop(old_name, None)
        manifest.entries[new_name] = entry
    return new_name, entry


def register(
    manifest: "Manifest",
    uri: Optional[str] = None,
    name: str = "",
    overwrite: bool = False,
    check_duplicate: bool = True,
    **options: Any,
) -> Tuple[str, Entry]:
    """Register a dataset and return its ``(name, entry)``.

    Args:
        manifest: Manifest to register into; persisted after a change.
        uri: Source locator. May be omitted when ``scheme`` and ``host``/``path``
            are given in ``options``.
        name: Dataset name; derived from the location when empty.
        overwrite: Allow renaming or replacing an existing entry.
        check_duplicate: Look for an existing entry with the same storage key.
        **options: Entry fields accepted by :func:`build_entry`.
    """
    entry = build_entry(uri, **options)

    if check_duplicate:
        duplicate = find_by_key(manifest, entry.key)
        if duplicate is not None:
            old_name, old_entry = duplicate
            # an unnamed re-registration keeps the existing name
            return update_entry(manifest, old_name, old_entry, name or old_name, entry, overwrite=overwrite)

    if not name:
        name = derive_name(entry)

    existing = manifest.get(name)
    if existing is not None:
        return update_entry(manifest, name, existing, name, entry, overwrite=overwrite)

    with manifest.transaction():
        manifest.entries[name] = entry
    LOG.info("Registered dataset '%s' -> %s", name, entry.key)
    return name, entry


def _legacy_uri(name: str, fields: dict) -> Optional[str]:
    uri = fields.pop("uri", None)
    for legacy in LEGACY_URI_FIELDS:
        if legacy not in fields:
            continue
        value = fields.pop(legacy)
        LOG.warning("Dataset '%s': the '%s' field is deprecated, use 'uri' instead.", name, legacy)
        if isinstance(value, (list, tuple)):
            if len(value) != 1:
                raise ValueError(f"Dataset '{name}': only one download URL is supported, got {len(value)}.")
            value = value[0]
        if uri and uri != value:
            raise ValueError(f"Dataset '{name}': cannot provide both 'uri' and '{legacy}'.")
        uri = value
    return uri


def register_many(manifest: "Manifest", records: Mapping[str, Mapping[str, Any]], **kwargs: Any) -> None:
    """Register every ``name -> fields`` table of a manifest file."""
    for name, record in records.items():
        fields = dict(record)
        uri = _legacy_uri(name, fields)
        if "ref" in fields:
            ref = fields.pop("ref")
            fields.setdefault("version", ref)
        for ignored in LEGACY_IGNORED_FIELDS:
            if ignored in fields:
                LOG.warning("Dataset '%s': ignoring obsolete field '%s'.", name, ignored)
                fields.pop(ignored)
        unknown = sorted(set(fields) - set(ENTRY_OPTIONS))
        if unknown:
            raise ValueError(f"Dataset '{name}': unknown field(s) {', '.join(unknown)}.")
        register(manifest, uri, name=name, **fields, **kwargs)


__all__ = [
    "GIT_HOSTS",
    "build_entry",
    "build_uri",
    "derive_name",
    "is_git_host",
    "is_repository_location",
    "register",
    "register_many",
    "repository_name",
    "update_entry",
]
