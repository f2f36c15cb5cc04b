"""Manifest file I/O helpers."""

from __future__ import annotations

import os
import tempfile
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping

import tomli_w
import yaml

TOML_SUFFIXES = {".toml"}
YAML_SUFFIXES = {".yaml", ".yml"}


def load_yaml(path: Path) -> dict:
    """Load a YAML file into a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_toml(path: Path) -> dict:
    """Load a TOML file into a dictionary."""
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in TOML_SUFFIXES | YAML_SUFFIXES:
        raise ValueError(f"Unsupported manifest format for file: {path} (expected .toml, .yaml or .yml)")
    return suffix


def read_records(path: Path) -> Dict[str, Dict[str, Any]]:
    """Read a manifest file into a mapping of dataset name to field table."""
    path = Path(path)
    suffix = _check_suffix(path)
    if not path.exists():
        raise FileNotFoundError(f"Manifest file does not exist: {path}")
    data = load_toml(path) if suffix in TOML_SUFFIXES else load_yaml(path)
    if not isinstance(data, dict):
        raise ValueError(f"Manifest {path} must contain a table keyed by dataset name.")
    for name, fields in data.items():
        if not isinstance(fields, dict):
            raise ValueError(f"Manifest entry '{name}' in {path} must be a table of fields.")
    return data


def write_records(path: Path, records: Mapping[str, Mapping[str, Any]]) -> None:
    """Write ``records`` to ``path`` atomically, picking the format from the suffix."""
    path = Path(path)
    suffix = _check_suffix(path)
    payload = {name: dict(fields) for name, fields in records.items()}
    if suffix in TOML_SUFFIXES:
        text = tomli_w.dumps(payload)
    else:
        text = yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


__all__ = ["load_toml", "load_yaml", "read_records", "write_records"]
