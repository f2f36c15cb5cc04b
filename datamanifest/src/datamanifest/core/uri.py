"""Parse source locators into structured location metadata."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List
from urllib.parse import parse_qs, urlsplit

from datamanifest.errors import ParseError

# user@host:path, the scp-like form git uses for SSH remotes
_SHORTHAND = re.compile(r"^(?P<user>[^@/:\s]+)@(?P<host>[^@/:\s]+):(?P<path>[^\s]*)$")

LOCAL_SCHEMES = ("file",)


@dataclass(frozen=True)
class ParsedUri:
    """Structural decomposition of a source locator."""

    uri: str
    scheme: str
    host: str
    path: str
    version: str = ""
    format: str = ""


def _first(query: Dict[str, List[str]], name: str) -> str:
    for value in query.get(name, []):
        if value:
            return value
    return ""


def canonical_uri(uri: str) -> str:
    """Rewrite the SSH shorthand ``user@host:path`` as ``git://host/path``."""
    text = uri.strip()
    if "://" in text:
        return text
    match = _SHORTHAND.match(text)
    if match is None:
        return text
    return f"git://{match['host']}/{match['path'].lstrip('/')}"


def parse_uri(uri: str) -> ParsedUri:
    """Parse ``uri`` into scheme, host, path, version and archive format.

    Version precedence is the URI fragment, then the ``version`` query
    parameter, then ``ref``. The ``format`` query parameter is reported as-is
    and left empty when absent so callers can infer it from the path.
    """
    if not isinstance(uri, str) or not uri.strip():
        raise ParseError("Cannot parse an empty URI.")
    text = canonical_uri(uri)
    try:
        parts = urlsplit(text)
        host = parts.hostname or ""
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError as exc:
        raise ParseError(f"Malformed URI '{uri}': {exc}") from exc

    scheme = parts.scheme.lower()
    if not scheme:
        msg = f"Malformed URI '{uri}': missing scheme (expected e.g. https://, git@host:path or file://)."
        raise ParseError(msg)
    if scheme not in LOCAL_SCHEMES and not host:
        raise ParseError(f"Malformed URI '{uri}': scheme '{scheme}' requires a host.")
    if not host and not parts.path:
        raise ParseError(f"Malformed URI '{uri}': no host or path.")

    query = parse_qs(parts.query)
    version = parts.fragment or _first(query, "version") or _first(query, "ref")
    return ParsedUri(
        uri=text,
        scheme=scheme,
        host=host,
        path=parts.path.rstrip("/"),
        version=version,
        format=_first(query, "format"),
    )


__all__ = ["LOCAL_SCHEMES", "ParsedUri", "canonical_uri", "parse_uri"]
