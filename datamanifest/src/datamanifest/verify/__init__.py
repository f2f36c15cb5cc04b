"""Content verification for fetched datasets."""

from .checksum import compute_sha256, hash_path, iter_files, verify

__all__ = ["compute_sha256", "hash_path", "iter_files", "verify"]
