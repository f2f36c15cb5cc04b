"""The manifest aggregate: named entries, a root folder and a backing file."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from datamanifest import fetch as fetching
from datamanifest import registry
from datamanifest import search as lookup
from datamanifest.config import Settings, default_datasets_path
from datamanifest.core.keys import build_extract_path, build_key
from datamanifest.core.model import BaseEntry, DownloadEntry, Entry
from datamanifest.core.uri import LOCAL_SCHEMES
from datamanifest.utils.io import read_records, write_records

LOG = logging.getLogger(__name__)

EntryRef = Union[str, BaseEntry]


class Manifest:
    """Mapping of dataset name to entry, plus where fetched content lives.

    Names are unique and case-sensitive; lookups through :meth:`search` are
    case-insensitive. When ``manifest_file`` is set and ``persist`` is true,
    every successful mutation is written back immediately. The file is not
    locked, so concurrent writers from other processes may lose updates.
    """

    def __init__(
        self,
        datasets_path: Optional[Union[str, Path]] = None,
        manifest_file: Optional[Union[str, Path]] = None,
        *,
        persist: bool = True,
        skip_checksum: bool = False,
        folder_checksum: bool = True,
        entries: Optional[Mapping[str, Entry]] = None,
    ) -> None:
        self.datasets_path = Path(datasets_path) if datasets_path else default_datasets_path()
        self.manifest_file = Path(manifest_file) if manifest_file else None
        self.persist = persist
        self.skip_checksum = skip_checksum
        self.folder_checksum = folder_checksum
        self.entries: Dict[str, Entry] = dict(entries or {})
        if self.manifest_file is not None and self.manifest_file.exists():
            self._load_records(read_records(self.manifest_file))

    @classmethod
    def load(
        cls,
        manifest_file: Union[str, Path],
        datasets_path: Optional[Union[str, Path]] = None,
        **kwargs: Any,
    ) -> "Manifest":
        """Read ``manifest_file`` into a new manifest bound to that file."""
        manifest_file = Path(manifest_file)
        if not manifest_file.exists():
            raise FileNotFoundError(f"Manifest file does not exist: {manifest_file}")
        return cls(datasets_path=datasets_path, manifest_file=manifest_file, **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "Manifest":
        """Create a manifest configured by :class:`~datamanifest.config.Settings`."""
        return cls(
            datasets_path=settings.datasets_path,
            manifest_file=settings.manifest_file,
            skip_checksum=settings.skip_checksum,
            folder_checksum=settings.folder_checksum,
            **kwargs,
        )

    def _load_records(self, records: Mapping[str, Mapping[str, Any]]) -> None:
        persist, self.persist = self.persist, False
        try:
            registry.register_many(self, records, check_duplicate=False)
        finally:
            self.persist = persist
        LOG.debug("Loaded %d dataset(s) from %s", len(self.entries), self.manifest_file)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, name: str) -> Entry:
        return self.entries[name]

    def get(self, name: str, default: Optional[Entry] = None) -> Optional[Entry]:
        """Return the entry registered under ``name`` exactly, or ``default``."""
        return self.entries.get(name, default)

    def items(self) -> Iterable[Tuple[str, Entry]]:
        """Return ``(name, entry)`` pairs in registration order."""
        return self.entries.items()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Manifest):
            return NotImplemented
        return self.entries == other.entries and self.datasets_path == other.datasets_path

    def __str__(self) -> str:
        lines = [type(self).__name__ + (" (Empty)" if not self.entries else ":")]
        for name, entry in self.entries.items():
            line = f"- {name} => {entry.string_short()}"
            lines.append(line if len(line) <= 80 else line[:80] + "...")
        lines.append(f"datasets_path: {self.datasets_path}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        body = "".join(f"    {name!r}: {entry.repr_short()},\n" for name, entry in self.entries.items())
        return f"{type(self).__name__}(\n  entries={{\n{body}  }},\n  datasets_path={str(self.datasets_path)!r}\n)"

    def records(self) -> Dict[str, Dict[str, Any]]:
        """Return the minimal per-entry tables written to the manifest file."""
        return {name: entry.persisted_fields() for name, entry in self.entries.items()}

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Write the manifest to ``path`` (default: the backing file)."""
        target = Path(path) if path else self.manifest_file
        if target is None:
            raise ValueError("No manifest file configured; pass an explicit path to save().")
        write_records(target, self.records())
        LOG.debug("Wrote %d dataset(s) to %s", len(self.entries), target)
        return target

    def flush(self) -> None:
        """Persist the manifest if a backing file is configured."""
        if self.persist and self.manifest_file is not None:
            self.save()

    def _snapshot(self) -> Optional[Dict[str, Entry]]:
        # mutations swap entries in and out of the map, never edit them in place
        if not (self.persist and self.manifest_file is not None):
            return None
        return dict(self.entries)

    @contextmanager
    def transaction(self) -> Iterator["Manifest"]:
        """Apply a mutation and flush it, restoring the previous map if the flush fails.

        Nothing is snapshotted while there is nothing to flush, as when a
        file is being loaded.
        """
        snapshot = self._snapshot()
        try:
            yield self
            self.flush()
        except BaseException:
            if snapshot is not None:
                self.entries = snapshot
            raise

    def resolve(self, target: EntryRef, **search_kwargs: Any) -> Tuple[Optional[str], Entry]:
        """Return ``(name, entry)`` for a dataset name, search query or entry."""
        if isinstance(target, BaseEntry):
            for name, entry in self.entries.items():
                if entry is target:
                    return name, entry
            return None, target  # type: ignore[return-value]
        if target in self.entries:
            return target, self.entries[target]
        return lookup.search_one(self, target, **search_kwargs)  # type: ignore[return-value]

    def resolve_path(self, target: EntryRef, extract: Optional[bool] = None) -> Path:
        """Return the local path of a dataset without touching the filesystem.

        ``extract`` defaults to the entry's own flag; when true the path of the
        extraction folder is returned instead of the raw download.
        """
        _, entry = self.resolve(target)
        if entry.skip_download and entry.scheme in LOCAL_SCHEMES and entry.path:
            return Path(entry.path)
        key = build_key(entry)
        if isinstance(entry, DownloadEntry):
            if extract is None:
                extract = entry.extract
            if extract:
                key = build_extract_path(key, entry.format)
        return self.datasets_path / key

    def register(self, uri: Optional[str] = None, **kwargs: Any) -> Tuple[str, Entry]:
        """Register a dataset; see :func:`datamanifest.registry.register`."""
        return registry.register(self, uri, **kwargs)

    def search(self, query: str, alt: bool = True, partial: bool = False) -> List[Tuple[str, Entry]]:
        """Search datasets; see :func:`datamanifest.search.search`."""
        return lookup.search(self, query, alt=alt, partial=partial)

    def search_one(self, query: str, **kwargs: Any) -> Optional[Tuple[str, Entry]]:
        """Return a single match; see :func:`datamanifest.search.search_one`."""
        return lookup.search_one(self, query, **kwargs)

    def fetch(self, target: EntryRef, extract: Optional[bool] = None, **kwargs: Any) -> Path:
        """Fetch a dataset; see :func:`datamanifest.fetch.fetch_one`."""
        return fetching.fetch_one(self, target, extract=extract, **kwargs)

    def fetch_all(self, names: Optional[Iterable[str]] = None, **kwargs: Any):
        """Fetch several datasets; see :func:`datamanifest.fetch.fetch_all`."""
        return fetching.fetch_all(self, names, **kwargs)


__all__ = ["EntryRef", "Manifest"]
