"""SHA-256 checksums for fetched files and folders."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Callable, Iterator, Optional

from datamanifest.core.model import BaseEntry
from datamanifest.errors import ChecksumMismatchError

LOG = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def _update(digest: "hashlib._Hash", path: Path) -> None:
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)


def compute_sha256(path: Path) -> str:
    """Compute the SHA256 checksum for a file."""
    digest = hashlib.sha256()
    _update(digest, Path(path))
    return digest.hexdigest()


def iter_files(folder: Path) -> Iterator[Path]:
    """Yield files below ``folder`` sorted by their POSIX relative path."""
    folder = Path(folder)
    files = [path for path in folder.rglob("*") if path.is_file()]
    yield from sorted(files, key=lambda path: path.relative_to(folder).as_posix())


def hash_path(path: Path) -> str:
    """Return the SHA256 of a file, or of all file bytes of a folder in sorted walk order."""
    path = Path(path)
    if path.is_file():
        return compute_sha256(path)
    digest = hashlib.sha256()
    for file_path in iter_files(path):
        _update(digest, file_path)
    return digest.hexdigest()


def verify(
    entry: BaseEntry,
    local_path: Path,
    persist: Optional[Callable[[], None]] = None,
    *,
    skip_checksum: bool = False,
    folder_checksum: bool = True,
) -> bool:
    """Verify ``local_path`` against the checksum recorded on ``entry``.

    An entry without a checksum gets the freshly computed one and ``persist``
    is called to record it. Verification is skipped when either skip flag is
    set, the path does not exist yet, or the path is a folder and
    ``folder_checksum`` is off.

    Raises:
        ChecksumMismatchError: The recorded and computed checksums differ.
    """
    local_path = Path(local_path)
    if skip_checksum or entry.skip_checksum:
        LOG.debug("Checksum verification disabled for %s", local_path)
        return True
    if not local_path.exists():
        LOG.debug("Nothing to verify yet at %s", local_path)
        return True
    if local_path.is_dir() and not folder_checksum:
        LOG.debug("Skipping folder checksum for %s", local_path)
        return True

    observed = hash_path(local_path)
    if not entry.sha256:
        LOG.info("Recording sha256 %s for %s", observed, local_path)
        entry.sha256 = observed
        if persist is not None:
            persist()
        return True
    if entry.sha256.lower() != observed:
        raise ChecksumMismatchError(local_path, entry.sha256, observed)
    LOG.debug("Checksum verified for %s", local_path)
    return True


__all__ = ["compute_sha256", "hash_path", "iter_files", "verify"]
