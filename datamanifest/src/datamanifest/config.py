"""Environment-driven settings for the default manifest."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

DATASETS_PATH_ENV = "DATAMANIFEST_DATASETS_PATH"
MANIFEST_FILE_ENV = "DATAMANIFEST_TOML"
DEFAULT_MANIFEST_NAME = "datasets.toml"


def default_datasets_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the cache folder used when no root folder is configured."""
    environ = os.environ if environ is None else environ
    cache_home = environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache_home) / "datamanifest"


class Settings(BaseModel):
    """Settings resolved from the environment and command-line overrides."""

    datasets_path: Path = Field(default_factory=default_datasets_path, description="Root folder for fetched content.")
    manifest_file: Optional[Path] = Field(default=None, description="Backing manifest file, if any.")
    skip_checksum: bool = Field(default=False, description="Disable checksum verification for every entry.")
    folder_checksum: bool = Field(default=True, description="Hash extracted folders and clones, not only files.")

    model_config = {"validate_assignment": True}

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> "Settings":
        """Build settings from environment variables.

        ``DATAMANIFEST_DATASETS_PATH`` overrides the root folder and
        ``DATAMANIFEST_TOML`` names the manifest file. Without the latter a
        ``datasets.toml`` in the working directory is used when present.
        """
        environ = os.environ if environ is None else environ
        datasets_path = environ.get(DATASETS_PATH_ENV)
        manifest_file: Optional[Path] = None
        if environ.get(MANIFEST_FILE_ENV):
            manifest_file = Path(environ[MANIFEST_FILE_ENV])
        else:
            candidate = Path(cwd or Path.cwd()) / DEFAULT_MANIFEST_NAME
            if candidate.exists():
                manifest_file = candidate
        return cls(
            datasets_path=Path(datasets_path) if datasets_path else default_datasets_path(environ),
            manifest_file=manifest_file,
        )


__all__ = [
    "DATASETS_PATH_ENV",
    "DEFAULT_MANIFEST_NAME",
    "MANIFEST_FILE_ENV",
    "Settings",
    "default_datasets_path",
]
