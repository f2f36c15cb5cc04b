"""Core abstractions for datamanifest."""

from .keys import COMPRESSED_FORMATS, build_extract_path, build_key, derive_key, infer_format
from .model import BaseEntry, DownloadEntry, Entry, RepositoryEntry
from .uri import ParsedUri, parse_uri

__all__ = [
    "BaseEntry",
    "COMPRESSED_FORMATS",
    "DownloadEntry",
    "Entry",
    "ParsedUri",
    "RepositoryEntry",
    "build_extract_path",
    "build_key",
    "derive_key",
    "infer_format",
    "parse_uri",
]
