"""Archive extraction."""

from __future__ import annotations

import logging
import shutil
import tarfile
import zipfile
from pathlib import Path

from datamanifest.core.keys import COMPRESSED_FORMATS
from datamanifest.errors import TransportError, UnsupportedFormatError

LOG = logging.getLogger(__name__)


def extract_archive(archive: Path, target_dir: Path, fmt: str) -> Path:
    """Extract ``archive`` into ``target_dir``.

    Members are unpacked into a sibling staging folder which is renamed to
    ``target_dir`` once extraction succeeded, so a failed run never leaves a
    half-populated target behind.
    """
    fmt = (fmt or "").lower()
    if fmt not in COMPRESSED_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported archive format '{fmt or 'unknown'}' for {archive}; "
            f"expected one of: {', '.join(COMPRESSED_FORMATS)}."
        )
    staging = target_dir.with_name(target_dir.name + ".partial")
    if staging.exists():
        shutil.rmtree(staging)
    staging.mkdir(parents=True)
    LOG.info("Extracting %s -> %s", archive, target_dir)
    try:
        if fmt == "zip":
            with zipfile.ZipFile(archive, "r") as zip_handle:
                zip_handle.extractall(staging)
        else:
            with tarfile.open(archive, "r:*") as tar_handle:
                tar_handle.extractall(staging, filter="data")
        staging.replace(target_dir)
    except (zipfile.BadZipFile, tarfile.TarError, OSError) as exc:
        shutil.rmtree(staging, ignore_errors=True)
        raise TransportError(f"Failed to extract {archive}: {exc}") from exc
    return target_dir


__all__ = ["extract_archive"]
