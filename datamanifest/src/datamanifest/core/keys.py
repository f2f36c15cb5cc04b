"""Derive canonical storage keys and extraction paths."""

from __future__ import annotations

import posixpath
from typing import Optional, Protocol

COMPRESSED_FORMATS = ("tar.gz", "tar", "zip")


class KeySource(Protocol):
    key: str
    host: str
    path: str
    version: str


def infer_format(path: Optional[str]) -> str:
    """Return the archive format implied by the extension of ``path``."""
    if not path:
        return ""
    lowered = path.lower()
    for fmt in COMPRESSED_FORMATS:
        if lowered.endswith("." + fmt):
            return fmt
    return ""


def is_compressed_format(fmt: Optional[str]) -> bool:
    """Return True if ``fmt`` names a supported archive format."""
    return bool(fmt) and fmt.lower() in COMPRESSED_FORMATS


def derive_key(host: str, path: str, version: str = "") -> str:
    """Join host and path into a storage key, suffixed with ``#version``."""
    key = posixpath.join(host or "", (path or "").strip("/")).strip("/")
    if version:
        key = f"{key}#{version}"
    return key


def build_key(entry: KeySource) -> str:
    """Return the entry's explicit key or the key derived from its location."""
    if entry.key:
        return entry.key
    return derive_key(entry.host, entry.path, entry.version)


def build_extract_path(key: str, fmt: str = "") -> str:
    """Return the folder an archive stored under ``key`` is extracted into.

    Known archive suffixes are removed, then a ``?format=<fmt>`` tail. Keys
    without either get a ``.d`` suffix so the folder never collides with the
    raw download.
    """
    lowered = key.lower()
    for suffix in COMPRESSED_FORMATS:
        if lowered.endswith("." + suffix):
            return key[: -(len(suffix) + 1)]
    candidates = (fmt.lower(),) if is_compressed_format(fmt) else COMPRESSED_FORMATS
    for candidate in candidates:
        marker = f"?format={candidate}"
        if lowered.endswith(marker):
            return key[: -len(marker)]
    return key + ".d"


__all__ = [
    "COMPRESSED_FORMATS",
    "build_extract_path",
    "build_key",
    "derive_key",
    "infer_format",
    "is_compressed_format",
]
