"""High-level Python API for registering, locating and fetching datasets."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union

from datamanifest.config import Settings
from datamanifest.core.model import BaseEntry, Entry
from datamanifest.fetch import FetchSummary, fetch_all as _fetch_all, fetch_one
from datamanifest.manifest import Manifest
from datamanifest.registry import register as _register
from datamanifest.search import search as _search, search_one as _search_one

_DEFAULT_MANIFEST: Optional[Manifest] = None


def default_manifest() -> Manifest:
    """Return the process-wide manifest configured from the environment."""
    global _DEFAULT_MANIFEST
    if _DEFAULT_MANIFEST is None:
        _DEFAULT_MANIFEST = Manifest.from_settings(Settings.from_env())
    return _DEFAULT_MANIFEST


def reset_default_manifest() -> None:
    """Forget the default manifest so the next access re-reads the environment."""
    global _DEFAULT_MANIFEST
    _DEFAULT_MANIFEST = None


def _manifest(manifest: Optional[Manifest]) -> Manifest:
    return manifest if manifest is not None else default_manifest()


def register(uri: Optional[str] = None, *, manifest: Optional[Manifest] = None, **kwargs: Any) -> Tuple[str, Entry]:
    """Register a dataset; see :func:`datamanifest.registry.register`."""
    return _register(_manifest(manifest), uri, **kwargs)


def fetch(
    target: Union[str, BaseEntry],
    *,
    manifest: Optional[Manifest] = None,
    extract: Optional[bool] = None,
) -> Path:
    """Fetch a dataset and return its local path."""
    return fetch_one(_manifest(manifest), target, extract=extract)


def fetch_all(names: Optional[Iterable[str]] = None, *, manifest: Optional[Manifest] = None) -> FetchSummary:
    """Fetch several datasets, continuing past failures."""
    return _fetch_all(_manifest(manifest), names)


def search(
    query: str,
    *,
    manifest: Optional[Manifest] = None,
    alt: bool = True,
    partial: bool = False,
) -> List[Tuple[str, Entry]]:
    """Return every dataset matching ``query``."""
    return _search(_manifest(manifest), query, alt=alt, partial=partial)


def search_one(query: str, *, manifest: Optional[Manifest] = None, **kwargs: Any) -> Optional[Tuple[str, Entry]]:
    """Return the single dataset matching ``query``."""
    return _search_one(_manifest(manifest), query, **kwargs)


def resolve_path(
    target: Union[str, BaseEntry],
    *,
    manifest: Optional[Manifest] = None,
    extract: Optional[bool] = None,
) -> Path:
    """Return a dataset's local path without touching the filesystem."""
    return _manifest(manifest).resolve_path(target, extract=extract)


def save(path: Optional[Union[str, Path]] = None, *, manifest: Optional[Manifest] = None) -> Path:
    """Write a manifest to ``path`` (default: its backing file)."""
    return _manifest(manifest).save(path)


def load(path: Union[str, Path], datasets_path: Optional[Union[str, Path]] = None, **kwargs: Any) -> Manifest:
    """Read a manifest file."""
    return Manifest.load(path, datasets_path=datasets_path, **kwargs)


def add_and_fetch(
    uri: Optional[str] = None,
    *,
    manifest: Optional[Manifest] = None,
    **kwargs: Any,
) -> Path:
    """Register a dataset, then fetch it (``kwargs`` go to registration)."""
    manifest = _manifest(manifest)
    name, _ = _register(manifest, uri, **kwargs)
    return fetch_one(manifest, name)


__all__ = [
    "add_and_fetch",
    "default_manifest",
    "fetch",
    "fetch_all",
    "load",
    "register",
    "reset_default_manifest",
    "resolve_path",
    "save",
    "search",
    "search_one",
]
