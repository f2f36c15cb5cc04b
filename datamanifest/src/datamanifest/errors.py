"""Exception taxonomy for manifest registration, lookup and retrieval."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from datamanifest.core.model import Entry


class DataManifestError(RuntimeError):
    """Base class for all errors raised by datamanifest."""


class ParseError(DataManifestError, ValueError):
    """Raised when a source locator cannot be parsed."""


class IdentityMismatchError(DataManifestError):
    """Raised when two entries claimed to be the same share no identifying field."""


class DuplicateNameError(DataManifestError):
    """Raised when registering identical content under a new name without overwrite."""


class DuplicateConflictError(DataManifestError):
    """Raised when a registration would replace differing data without overwrite."""

    def __init__(
        self,
        message: str,
        *,
        old_name: str,
        old_entry: "Entry",
        new_name: str,
        new_entry: "Entry",
        old_path: Optional[Path] = None,
        new_path: Optional[Path] = None,
        stale_data: bool = False,
    ) -> None:
        super().__init__(message)
        self.old_name = old_name
        self.old_entry = old_entry
        self.new_name = new_name
        self.new_entry = new_entry
        self.old_path = old_path
        self.new_path = new_path
        self.stale_data = stale_data


class ChecksumMismatchError(DataManifestError):
    """Raised when on-disk content does not match the recorded checksum."""

    def __init__(self, path: Path, expected: str, observed: str) -> None:
        msg = (
            f"Checksum mismatch for {path}: expected {expected}, observed {observed}. "
            "The upstream data may have been republished or the local copy is corrupted; "
            "remove the local copy or update the recorded sha256 explicitly."
        )
        super().__init__(msg)
        self.path = path
        self.expected = expected
        self.observed = observed


class TransportError(DataManifestError):
    """Raised when a download, clone, copy or extraction fails."""


class TransportConflictError(TransportError):
    """Raised when a transport cannot be registered next to the existing ones."""


class UnsupportedFormatError(TransportError):
    """Raised when extraction is requested for an unknown archive format."""


class NotFoundError(DataManifestError, LookupError):
    """Raised when a lookup matches no dataset."""


class MultipleMatchesError(DataManifestError, LookupError):
    """Raised when a lookup that must be unique matches several datasets."""


__all__ = [
    "ChecksumMismatchError",
    "DataManifestError",
    "DuplicateConflictError",
    "DuplicateNameError",
    "IdentityMismatchError",
    "MultipleMatchesError",
    "NotFoundError",
    "ParseError",
    "TransportConflictError",
    "TransportError",
    "UnsupportedFormatError",
]
