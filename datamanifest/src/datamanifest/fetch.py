"""Download-if-absent, verify-always retrieval of manifest entries."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Union

from pydantic import BaseModel, Field

from datamanifest.core.model import BaseEntry, DownloadEntry
from datamanifest.transport import TransportDispatcher
from datamanifest.verify import verify

if TYPE_CHECKING:  # pragma: no cover
    from datamanifest.manifest import Manifest

LOG = logging.getLogger(__name__)


class FetchSummary(BaseModel):
    """Outcome of a batch fetch."""

    fetched: Dict[str, Path] = Field(default_factory=dict, description="Local path per fetched dataset.")
    failures: Dict[str, str] = Field(default_factory=dict, description="Error message per failed dataset.")

    @property
    def ok(self) -> bool:
        """Return True when every requested dataset was fetched."""
        return not self.failures


def fetch_one(
    manifest: "Manifest",
    target: Union[str, BaseEntry],
    extract: Optional[bool] = None,
    dispatcher: Optional[TransportDispatcher] = None,
) -> Path:
    """Fetch a dataset if it is not on disk yet, verify it and return its path.

    ``target`` is a dataset name, a search query or an entry. ``extract``
    defaults to the entry's own flag. The checksum is verified whenever the
    requested path is the one the entry's checksum describes.
    """
    _, entry = manifest.resolve(target)
    own_extract = isinstance(entry, DownloadEntry) and entry.extract
    if extract is None:
        extract = own_extract
    raw_path = manifest.resolve_path(entry, extract=False)
    final_path = manifest.resolve_path(entry, extract=extract)

    if not final_path.exists():
        dispatcher = dispatcher or TransportDispatcher()
        dispatcher.fetch(entry, raw_path, extract_to=final_path if final_path != raw_path else None)

    if bool(extract) == own_extract:
        verify(
            entry,
            final_path,
            manifest.flush,
            skip_checksum=manifest.skip_checksum,
            folder_checksum=manifest.folder_checksum,
        )
    else:
        LOG.debug("Not verifying %s: the recorded checksum describes another path.", final_path)
    return final_path


def fetch_all(
    manifest: "Manifest",
    names: Optional[Iterable[str]] = None,
    extract: Optional[bool] = None,
    dispatcher: Optional[TransportDispatcher] = None,
) -> FetchSummary:
    """Fetch ``names`` (default: every dataset) one after another.

    A failing dataset is logged and recorded in the summary; the remaining
    datasets are still fetched.
    """
    dispatcher = dispatcher or TransportDispatcher()
    selected = list(manifest.entries if names is None else names)
    summary = FetchSummary()
    for name in selected:
        try:
            summary.fetched[name] = fetch_one(manifest, name, extract=extract, dispatcher=dispatcher)
        except Exception as exc:  # noqa: BLE001 - recorded in the summary
            LOG.warning("Failed to fetch '%s': %s", name, exc)
            summary.failures[name] = str(exc)
    if summary.failures:
        LOG.warning("%d of %d dataset(s) failed to fetch.", len(summary.failures), len(selected))
    return summary


__all__ = ["FetchSummary", "fetch_all", "fetch_one"]
