#!/usr/bin/env python3
"""Register and fetch manifest datasets from workflow engines."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional, Sequence

from datamanifest import api
from datamanifest.errors import DataManifestError
from datamanifest.manifest import Manifest


def _open_manifest(args: argparse.Namespace) -> Manifest:
    return Manifest(datasets_path=args.root, manifest_file=args.manifest)


def _register(args: argparse.Namespace) -> None:
    manifest = _open_manifest(args)
    name, entry = api.register(
        args.uri,
        manifest=manifest,
        name=args.name or "",
        version=args.version or "",
        extract=args.extract,
        overwrite=args.overwrite,
    )
    summary = {
        "name": name,
        "key": entry.key,
        "kind": entry.kind,
        "path": str(manifest.resolve_path(entry)),
    }
    if args.emit_json:
        print(json.dumps(summary))


def _fetch(args: argparse.Namespace) -> None:
    manifest = _open_manifest(args)
    summary = api.fetch_all(args.names or None, manifest=manifest)
    if args.emit_json:
        payload = {
            "ok": summary.ok,
            "fetched": {name: str(path) for name, path in summary.fetched.items()},
            "failures": summary.failures,
        }
        print(json.dumps(payload))
    if not summary.ok:
        raise SystemExit(1)


def _path(args: argparse.Namespace) -> None:
    manifest = _open_manifest(args)
    local_path = api.resolve_path(args.name, manifest=manifest)
    if args.emit_json:
        print(json.dumps({"name": args.name, "path": str(local_path), "exists": local_path.exists()}))
    else:
        print(local_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--manifest", type=Path, required=True, help="Manifest file (.toml, .yaml or .yml).")
    parser.add_argument("--root", type=Path, help="Folder fetched datasets are stored in.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register = subparsers.add_parser("register", help="Register a dataset in the manifest.")
    register.add_argument("uri", help="Source URI of the dataset.")
    register.add_argument("--name", help="Dataset name (derived from the URI if omitted).")
    register.add_argument("--version", help="Version appended to the storage key.")
    register.add_argument("--extract", action="store_true", help="Extract the archive after download.")
    register.add_argument("--overwrite", action="store_true", help="Replace a conflicting entry.")
    register.add_argument("--emit-json", action="store_true", help="Emit a machine-readable summary.")
    register.set_defaults(func=_register)

    fetch = subparsers.add_parser("fetch", help="Fetch datasets that are not on disk yet.")
    fetch.add_argument("names", nargs="*", help="Datasets to fetch (default: all).")
    fetch.add_argument("--emit-json", action="store_true", help="Emit a machine-readable summary.")
    fetch.set_defaults(func=_fetch)

    path = subparsers.add_parser("path", help="Print the local path of a dataset.")
    path.add_argument("name", help="Dataset name, alias, DOI or key.")
    path.add_argument("--emit-json", action="store_true", help="Emit a machine-readable summary.")
    path.set_defaults(func=_path)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except DataManifestError as exc:
        raise SystemExit(f"error: {exc}") from exc


if __name__ == "__main__":
    main()
