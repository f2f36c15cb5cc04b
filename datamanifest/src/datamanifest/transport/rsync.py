"""Remote copies over SSH with rsync."""

from __future__ import annotations

import logging
import posixpath
import shutil
from pathlib import Path
from typing import List
from urllib.parse import urlsplit

from datamanifest.core.model import BaseEntry
from datamanifest.errors import TransportError
from datamanifest.transport.base import Transport, run_command, strip_fragment
from datamanifest.transport.registry import register_transport

LOG = logging.getLogger(__name__)

REMOTE_COPY_SCHEMES = ("ssh", "sshfs", "rsync")
RSYNC_FLAGS = "-arvzL"


def rsync_source(entry: BaseEntry) -> str:
    """Return the rsync source spec (``[user@]host:path`` or an ``rsync://`` URL)."""
    if entry.scheme == "rsync":
        return strip_fragment(entry.uri)
    user = urlsplit(entry.uri).username if "://" in entry.uri else None
    host = f"{user}@{entry.host}" if user else entry.host
    return f"{host}:{entry.path}"


def staging_dir(destination: Path) -> Path:
    """Return the private folder rsync writes into before ``destination`` is populated."""
    return destination.with_name(destination.name + ".partial")


def rsync_command(entry: BaseEntry, destination: Path) -> List[str]:
    """Build the rsync command copying ``entry`` into the staging folder of ``destination``."""
    return ["rsync", RSYNC_FLAGS, rsync_source(entry), f"{staging_dir(destination)}/"]


@register_transport
class RsyncTransport(Transport):
    """Copy remote paths with ``rsync -arvzL`` (archive, verbose, compress, follow links).

    The copy lands in ``<destination>.partial/`` and its single top-level
    item is then moved to ``destination``, so siblings of ``destination``
    that share the remote basename are never touched.
    """

    name = "rsync"
    priority = 20
    schemes = REMOTE_COPY_SCHEMES

    def handles(self, entry: BaseEntry, scheme: str) -> bool:
        return scheme in REMOTE_COPY_SCHEMES

    def fetch(self, entry: BaseEntry, destination: Path, scheme: str) -> None:
        staging = staging_dir(destination)
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True)
        try:
            run_command(rsync_command(entry, destination))
            produced = staging / posixpath.basename(entry.path.rstrip("/"))
            if not produced.exists():
                children = list(staging.iterdir())
                if len(children) != 1:
                    msg = f"rsync of {entry.uri} produced {len(children)} item(s) in {staging}, expected one."
                    raise TransportError(msg)
                produced = children[0]
            LOG.debug("Moving %s -> %s", produced, destination)
            produced.rename(destination)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        if not destination.exists():
            raise TransportError(f"rsync completed but {destination} was not created.")


__all__ = ["REMOTE_COPY_SCHEMES", "RsyncTransport", "rsync_command", "rsync_source", "staging_dir"]
