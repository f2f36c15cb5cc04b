"""Typed dataset entries persisted in a manifest."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Dict, List, Literal, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from datamanifest.core.keys import derive_key, infer_format
from datamanifest.core.uri import parse_uri


class BaseEntry(BaseModel):
    """Fields shared by every dataset entry."""

    uri: str = Field(default="", description="Canonical source locator.")
    scheme: str = Field(default="", description="URI scheme, derived from 'uri'.")
    host: str = Field(default="", description="Host component, derived from 'uri'.")
    path: str = Field(default="", description="Path component, derived from 'uri'.")
    version: str = Field(default="", description="Version discriminator appended to the key as '#version'.")
    doi: str = Field(default="", description="Digital object identifier usable as an alternative lookup key.")
    aliases: List[str] = Field(default_factory=list, description="Alternative lookup names.")
    key: str = Field(default="", description="Storage key relative to the manifest root folder.")
    sha256: str = Field(default="", description="Content checksum; empty until the first verified fetch.")
    skip_checksum: bool = Field(default=False, description="Never verify this entry's content.")
    skip_download: bool = Field(default=False, description="Treat the URI as an already available local reference.")

    model_config = {"validate_assignment": True, "extra": "forbid"}

    # never written to the manifest file; re-derived from 'uri' on load
    DERIVED_FIELDS: ClassVar[Tuple[str, ...]] = ("kind", "scheme", "host", "path")
    CHECKSUM_FIELDS: ClassVar[Tuple[str, ...]] = ("sha256", "skip_checksum")

    @field_validator("aliases", mode="before")
    @classmethod
    def _coerce_aliases(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(alias) for alias in value]

    def alternative_keys(self) -> List[str]:
        """Return aliases, DOI, key and path, in lookup order."""
        values = list(self.aliases)
        values.extend(value for value in (self.doi, self.key, self.path) if value)
        return values

    def identity_fields(self) -> Dict[str, Any]:
        """Return the fields compared when deciding whether two entries are equal."""
        return self.model_dump(exclude=set(self.CHECKSUM_FIELDS))

    def same_content(self, other: "BaseEntry") -> bool:
        """Return True if ``other`` equals this entry, checksum fields aside."""
        return type(self) is type(other) and self.identity_fields() == other.identity_fields()

    def _derivable_value(self, field: str) -> Any:
        if field == "version":
            return parse_uri(self.uri).version if self.uri else ""
        if field == "key":
            return derive_key(self.host, self.path, self.version)
        return None

    def is_derivable_default(self, field: str) -> bool:
        """Return True if ``field`` can be omitted from the manifest file."""
        if field in self.DERIVED_FIELDS:
            return True
        value = getattr(self, field)
        if value in ("", False, None) or value == []:
            return True
        return value == self._derivable_value(field)

    def persisted_fields(self) -> Dict[str, Any]:
        """Return the minimal mapping written to the manifest file."""
        record = self.model_dump()
        return {
            field: value
            for field, value in record.items()
            if not self.is_derivable_default(field)
        }

    def string_short(self) -> str:
        """Return a one-word description of the entry (its key)."""
        return self.key

    def repr_short(self) -> str:
        """Return a compact representation showing only the URI."""
        uri = self.uri if len(self.uri) <= 50 else self.uri[:50] + "..."
        return f"{type(self).__name__}(uri={uri!r}, ...)"

    def __str__(self) -> str:
        lines = [f"{type(self).__name__}:"]
        lines.extend(f"- {field}={value}" for field, value in self.persisted_fields().items())
        return "\n".join(lines)


class DownloadEntry(BaseEntry):
    """A file or archive retrieved by download, copy or rsync."""

    kind: Literal["download"] = "download"
    extract: bool = Field(default=False, description="Expand the archive into a sibling folder after download.")
    format: str = Field(default="", description="Archive format; inferred from the path extension when empty.")

    def _derivable_value(self, field: str) -> Any:
        if field == "format":
            parsed_format = parse_uri(self.uri).format if self.uri else ""
            return parsed_format or infer_format(self.path)
        return super()._derivable_value(field)


class RepositoryEntry(BaseEntry):
    """A git repository retrieved by shallow clone."""

    kind: Literal["repository"] = "repository"
    branch: str = Field(default="", description="Git branch or tag to check out.")


Entry = Annotated[Union[DownloadEntry, RepositoryEntry], Field(discriminator="kind")]


__all__ = ["BaseEntry", "DownloadEntry", "Entry", "RepositoryEntry"]
