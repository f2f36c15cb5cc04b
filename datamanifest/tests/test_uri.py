"""Source locator parsing."""

from __future__ import annotations

import pytest

from datamanifest.core.uri import canonical_uri, parse_uri
from datamanifest.errors import ParseError


def test_https_with_fragment_version() -> None:
    parsed = parse_uri("https://Example.org/data/set.zip#v2")
    assert parsed.scheme == "https"
    assert parsed.host == "example.org"
    assert parsed.path == "/data/set.zip"
    assert parsed.version == "v2"
    assert parsed.format == ""


def test_query_version_and_format() -> None:
    parsed = parse_uri("https://example.org/d/1?format=zip&ref=main")
    assert parsed.path == "/d/1"
    assert parsed.version == "main"
    assert parsed.format == "zip"
    assert parse_uri("https://example.org/d?version=1&ref=2").version == "1"
    assert parse_uri("https://example.org/d?version=1#3").version == "3"


def test_ssh_shorthand() -> None:
    assert canonical_uri("git@github.com:org/repo.git") == "git://github.com/org/repo.git"
    parsed = parse_uri("git@github.com:org/repo.git")
    assert parsed.scheme == "git"
    assert parsed.host == "github.com"
    assert parsed.path == "/org/repo.git"


def test_file_uri_without_host() -> None:
    parsed = parse_uri("file:///srv/data/")
    assert parsed.scheme == "file"
    assert parsed.host == ""
    assert parsed.path == "/srv/data"


def test_trailing_slash_is_ignored() -> None:
    assert parse_uri("https://example.org/data/").path == "/data"


@pytest.mark.parametrize(
    "uri",
    ["", "   ", "relative/path.csv", "https:///nohost", "https://example.org:notaport/x", "file://"],
)
def test_malformed_uris(uri: str) -> None:
    with pytest.raises(ParseError):
        parse_uri(uri)
