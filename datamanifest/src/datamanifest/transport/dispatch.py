"""Select and run the transport that retrieves an entry."""

from __future__ import annotations

import logging
import socket
from pathlib import Path
from typing import Iterable, List, Optional

from datamanifest.core.keys import infer_format
from datamanifest.core.model import BaseEntry, DownloadEntry
from datamanifest.errors import TransportError
from datamanifest.transport.archive import extract_archive
from datamanifest.transport.base import Transport
from datamanifest.transport.registry import iter_transports
from datamanifest.transport.rsync import REMOTE_COPY_SCHEMES

LOG = logging.getLogger(__name__)


def is_local_host(host: str, hostname: str) -> bool:
    """Return True if ``host`` names this machine (exact match, or its first label is the hostname)."""
    if not host or not hostname:
        return False
    return host == hostname or host.split(".")[0] == hostname


class TransportDispatcher:
    """Route entries to transports, download-if-absent, then extract."""

    def __init__(
        self,
        transports: Optional[Iterable[Transport]] = None,
        hostname: Optional[str] = None,
    ) -> None:
        """Create a dispatcher over ``transports`` (default: all registered ones)."""
        if transports is None:
            transports = [transport_cls() for transport_cls in iter_transports()]
        self._transports: List[Transport] = sorted(transports, key=lambda transport: transport.priority)
        self._hostname = hostname if hostname is not None else socket.gethostname()

    @property
    def transports(self) -> List[Transport]:
        """Transports in the order they are consulted."""
        return list(self._transports)

    def resolve_scheme(self, entry: BaseEntry) -> str:
        """Return the effective scheme, downgrading remote copies of this host to ``file``."""
        scheme = entry.scheme
        if scheme in REMOTE_COPY_SCHEMES and is_local_host(entry.host, self._hostname):
            LOG.debug("%s is this machine; copying locally.", entry.host)
            return "file"
        return scheme

    def select(self, entry: BaseEntry, scheme: str) -> Transport:
        """Return the first transport that handles ``entry`` over ``scheme``."""
        for transport in self._transports:
            if transport.handles(entry, scheme):
                return transport
        raise TransportError(f"No transport available for scheme '{scheme}' ({entry.uri}).")

    def fetch(self, entry: BaseEntry, destination: Path, extract_to: Optional[Path] = None) -> None:
        """Retrieve ``entry`` into ``destination`` unless the content already exists.

        When ``extract_to`` is given the raw download is expanded there. The
        step is skipped entirely if the final target (``extract_to`` or
        ``destination``) is already present; existing content is never
        replaced.
        """
        destination = Path(destination)
        target = Path(extract_to) if extract_to is not None else destination
        if entry.skip_download:
            LOG.debug("Download disabled for %s", entry.uri)
            return
        if target.exists():
            LOG.debug("Already present: %s", target)
            return

        if not destination.exists():
            scheme = self.resolve_scheme(entry)
            transport = self.select(entry, scheme)
            destination.parent.mkdir(parents=True, exist_ok=True)
            LOG.info("Fetching %s via %s -> %s", entry.uri, transport.name, destination)
            transport.fetch(entry, destination, scheme)
            if not destination.exists():
                raise TransportError(f"Transport '{transport.name}' did not create {destination}.")

        if extract_to is not None:
            fmt = entry.format if isinstance(entry, DownloadEntry) else ""
            extract_archive(destination, target, fmt or infer_format(destination.name))


__all__ = ["TransportDispatcher", "is_local_host"]
