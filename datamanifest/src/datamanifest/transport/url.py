"""Generic URL downloads (HTTP, HTTPS, FTP)."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from datamanifest import __version__
from datamanifest.core.model import BaseEntry
from datamanifest.errors import TransportError
from datamanifest.transport.base import Transport, strip_fragment
from datamanifest.transport.registry import register_transport

LOG = logging.getLogger(__name__)

USER_AGENT = f"datamanifest/{__version__}"
CHUNK_SIZE = 64 * 1024


def download_file(url: str, destination: Path) -> None:
    """Download a URL to the specified destination."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")
    req = Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urlopen(req) as response, partial.open("wb") as handle:
            while True:
                chunk = response.read(CHUNK_SIZE)
                if not chunk:
                    break
                handle.write(chunk)
    except HTTPError as exc:
        partial.unlink(missing_ok=True)
        raise TransportError(f"Failed to download {url}: HTTP {exc.code}") from exc
    except URLError as exc:
        partial.unlink(missing_ok=True)
        raise TransportError(f"Failed to download {url}: {exc.reason}") from exc
    except OSError as exc:
        partial.unlink(missing_ok=True)
        raise TransportError(f"Failed to download {url}: {exc}") from exc
    partial.replace(destination)


@register_transport
class UrlTransport(Transport):
    """Download anything ``urllib`` can open; the fallback transport."""

    name = "url"
    priority = 100
    schemes = ("http", "https", "ftp")

    def handles(self, entry: BaseEntry, scheme: str) -> bool:
        return True

    def fetch(self, entry: BaseEntry, destination: Path, scheme: str) -> None:
        download_file(strip_fragment(entry.uri), destination)


__all__ = ["USER_AGENT", "UrlTransport", "download_file"]
