"""Transport interface definitions."""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple
from urllib.parse import urlsplit, urlunsplit

from datamanifest.core.model import BaseEntry
from datamanifest.errors import TransportError

LOG = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract base class for the mechanisms that retrieve dataset content."""

    name: str = "transport"
    priority: int = 100
    schemes: Tuple[str, ...] = ()

    @abstractmethod
    def handles(self, entry: BaseEntry, scheme: str) -> bool:
        """Return True if this transport can retrieve ``entry`` over ``scheme``."""

    @abstractmethod
    def fetch(self, entry: BaseEntry, destination: Path, scheme: str) -> None:
        """Retrieve ``entry`` so that its content ends up at ``destination``."""

    def metadata(self) -> Dict[str, Any]:
        """Return metadata describing the transport."""
        return {"name": self.name, "priority": self.priority, "schemes": list(self.schemes)}


def strip_fragment(uri: str) -> str:
    """Return ``uri`` without its ``#fragment``."""
    if "://" not in uri:
        return uri.split("#", 1)[0]
    parts = urlsplit(uri)
    return urlunsplit(parts._replace(fragment=""))


def run_command(cmd: Sequence[str], cwd: Path | None = None) -> str:
    """Run an external command, raising :class:`TransportError` on failure."""
    LOG.debug("Running: %s", " ".join(cmd))
    try:
        completed = subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd else None,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise TransportError(f"Required executable '{cmd[0]}' was not found on PATH.") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or "").strip()
        msg = f"Command failed with exit code {exc.returncode}: {' '.join(cmd)}"
        if detail:
            msg += f"\n{detail}"
        raise TransportError(msg) from exc
    return completed.stdout


__all__ = ["Transport", "run_command", "strip_fragment"]
