"""Shallow git clones."""

from __future__ import annotations

from pathlib import Path
from typing import List
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from datamanifest.core.model import BaseEntry, RepositoryEntry
from datamanifest.transport.base import Transport, run_command, strip_fragment
from datamanifest.transport.registry import register_transport

_VERSION_PARAMS = {"version", "ref"}


def clone_url(uri: str) -> str:
    """Return ``uri`` without the fragment and version query parameters git cannot use."""
    uri = strip_fragment(uri)
    if "://" not in uri:
        return uri
    parts = urlsplit(uri)
    query = [(key, value) for key, value in parse_qsl(parts.query) if key not in _VERSION_PARAMS]
    return urlunsplit(parts._replace(query=urlencode(query)))


def clone_command(entry: BaseEntry, destination: Path) -> List[str]:
    """Build the ``git clone`` command line for ``entry``."""
    cmd = ["git", "clone", "--depth", "1"]
    ref = getattr(entry, "branch", "") or entry.version
    if ref:
        cmd.extend(["--branch", ref])
    cmd.extend([clone_url(entry.uri), str(destination)])
    return cmd


@register_transport
class GitTransport(Transport):
    """Clone git repositories with ``git clone --depth 1``."""

    name = "git"
    priority = 10
    schemes = ("git", "ssh+git", "https")

    def handles(self, entry: BaseEntry, scheme: str) -> bool:
        return isinstance(entry, RepositoryEntry)

    def fetch(self, entry: BaseEntry, destination: Path, scheme: str) -> None:
        run_command(clone_command(entry, destination))


__all__ = ["GitTransport", "clone_command", "clone_url"]
