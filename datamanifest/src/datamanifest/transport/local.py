"""Copies from the local filesystem."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from datamanifest.core.model import BaseEntry
from datamanifest.errors import TransportError
from datamanifest.transport.base import Transport
from datamanifest.transport.registry import register_transport

LOG = logging.getLogger(__name__)


def copy_path(source: Path, destination: Path) -> None:
    """Recursively copy ``source`` to ``destination``, following symlinks."""
    if not source.exists():
        raise TransportError(f"Local source does not exist: {source}")
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        if source.is_dir():
            shutil.copytree(source, destination, symlinks=False)
        else:
            shutil.copy2(source, destination)
    except OSError as exc:
        raise TransportError(f"Failed to copy {source} to {destination}: {exc}") from exc


@register_transport
class LocalTransport(Transport):
    """Copy files and folders that are reachable on this machine."""

    name = "local"
    priority = 30
    schemes = ("file",)

    def handles(self, entry: BaseEntry, scheme: str) -> bool:
        return scheme == "file"

    def fetch(self, entry: BaseEntry, destination: Path, scheme: str) -> None:
        source = Path(entry.path)
        if source.resolve() == destination.resolve():
            LOG.debug("Source and destination are the same path: %s", source)
            return
        copy_path(source, destination)


__all__ = ["LocalTransport", "copy_path"]
