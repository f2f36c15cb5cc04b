"""Utility helpers for datamanifest."""

from .io import load_toml, load_yaml, read_records, write_records

__all__ = ["load_toml", "load_yaml", "read_records", "write_records"]
