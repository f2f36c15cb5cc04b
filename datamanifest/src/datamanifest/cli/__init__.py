"""Command-line interface for datamanifest."""

from .main import app

__all__ = ["app"]
