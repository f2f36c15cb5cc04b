"""CLI entrypoint for datamanifest."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from datamanifest import __version__
from datamanifest.config import Settings
from datamanifest.errors import DataManifestError
from datamanifest.fetch import fetch_all, fetch_one
from datamanifest.manifest import Manifest
from datamanifest.registry import register
from datamanifest.search import search, search_one
from datamanifest.verify import verify

console = Console()
app = typer.Typer(help="Register, fetch and verify datasets listed in a manifest file.")

LOG = logging.getLogger("datamanifest")
LOG_JSON = False


def _configure_logging(verbosity: int, json_logs: bool) -> None:
    global LOG_JSON
    LOG_JSON = json_logs
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(message)s")


def _log(event: str, **payload: object) -> None:
    if LOG_JSON:
        record = {"event": event, **payload}
        console.print_json(data=record)
    else:
        details = " ".join(f"{key}={value}" for key, value in payload.items())
        console.log(f"{event} {details}" if details else event)


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[bold red]{type(exc).__name__}:[/bold red] {escape(str(exc))}")
    raise typer.Exit(code=1) from exc


def _version_callback(value: bool) -> None:
    """Print the package version and exit when requested."""
    if value:
        console.print(f"datamanifest [bold cyan]{__version__}[/bold cyan]")
        raise typer.Exit()


def _manifest(ctx: typer.Context) -> Manifest:
    options = ctx.obj or {}
    settings = Settings.from_env()
    if options.get("manifest_file") is not None:
        settings.manifest_file = options["manifest_file"]
    if options.get("datasets_path") is not None:
        settings.datasets_path = options["datasets_path"]
    if options.get("skip_checksum"):
        settings.skip_checksum = True
    try:
        return Manifest.from_settings(settings)
    except (DataManifestError, ValueError, OSError) as exc:
        _fail(exc)


@app.callback()
def main(
    ctx: typer.Context,
    manifest_file: Optional[Path] = typer.Option(
        None, "--manifest", "-m", help="Manifest file (.toml, .yaml); defaults to $DATAMANIFEST_TOML or ./datasets.toml."
    ),
    datasets_path: Optional[Path] = typer.Option(
        None, "--root", "-r", help="Folder fetched datasets are stored in; defaults to $DATAMANIFEST_DATASETS_PATH."
    ),
    skip_checksum: bool = typer.Option(False, "--skip-checksum", help="Disable checksum verification."),
    verbose: int = typer.Option(0, "--verbose", "-V", count=True, help="Increase log verbosity (repeatable)."),
    log_json: bool = typer.Option(False, "--log-json", help="Emit JSON structured logs."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the datamanifest version and exit.",
    ),
) -> None:
    """Initialize the CLI before command dispatch."""
    _configure_logging(verbose, log_json)
    ctx.obj = {"manifest_file": manifest_file, "datasets_path": datasets_path, "skip_checksum": skip_checksum}


@app.command()
def add(
    ctx: typer.Context,
    uri: str = typer.Argument(..., help="Source URI: https://..., git@host:org/repo.git, ssh://host/path, file:///path."),
    name: str = typer.Option("", "--name", "-n", help="Dataset name (derived from the URI when omitted)."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Allow renaming or replacing an existing entry."),
    check_duplicate: bool = typer.Option(
        True, "--check-duplicate/--no-check-duplicate", help="Detect entries with the same storage key."
    ),
    version: str = typer.Option("", "--version", help="Version appended to the storage key."),
    branch: str = typer.Option("", "--branch", help="Git branch or tag to clone."),
    doi: str = typer.Option("", "--doi", help="DOI of the dataset."),
    aliases: Optional[List[str]] = typer.Option(None, "--alias", "-a", help="Alternative name (repeatable)."),
    key: str = typer.Option("", "--key", help="Explicit storage key."),
    sha256: str = typer.Option("", "--sha256", help="Expected SHA-256 checksum."),
    skip_checksum: bool = typer.Option(False, "--skip-checksum", help="Never verify this dataset."),
    skip_download: bool = typer.Option(False, "--skip-download", help="Treat the URI as an existing local reference."),
    extract: bool = typer.Option(False, "--extract", help="Extract the archive after download."),
    archive_format: str = typer.Option("", "--format", "-f", help="Archive format: zip, tar, tar.gz."),
    fetch: bool = typer.Option(False, "--fetch", help="Fetch the dataset right after registering it."),
) -> None:
    """Register a dataset in the manifest."""
    manifest = _manifest(ctx)
    try:
        dataset_name, entry = register(
            manifest,
            uri,
            name=name,
            overwrite=overwrite,
            check_duplicate=check_duplicate,
            version=version,
            branch=branch,
            doi=doi,
            aliases=aliases or [],
            key=key,
            sha256=sha256,
            skip_checksum=skip_checksum,
            skip_download=skip_download,
            extract=extract,
            format=archive_format,
        )
        _log("dataset.registered", name=dataset_name, key=entry.key)
        if fetch:
            local_path = fetch_one(manifest, dataset_name)
            _log("dataset.fetched", name=dataset_name, path=local_path)
    except DataManifestError as exc:
        _fail(exc)
    if manifest.manifest_file is None:
        console.print("[yellow]No manifest file configured; the registration was not saved.[/yellow]")
    console.print(f"[bold green]{dataset_name}[/bold green] -> {entry.key}")


@app.command()
def fetch(
    ctx: typer.Context,
    names: Optional[List[str]] = typer.Argument(None, help="Datasets to fetch (default: all)."),
    extract: Optional[bool] = typer.Option(None, "--extract/--no-extract", help="Override the entries' extract flag."),
) -> None:
    """Fetch datasets that are not on disk yet and verify their checksums."""
    manifest = _manifest(ctx)
    summary = fetch_all(manifest, names or None, extract=extract)
    for dataset_name, local_path in summary.fetched.items():
        console.print(f"[green]{dataset_name}[/green] {local_path}")
    for dataset_name, message in summary.failures.items():
        console.print(f"[bold red]{dataset_name}[/bold red] {escape(message)}")
    _log("fetch.completed", fetched=len(summary.fetched), failed=len(summary.failures))
    if not summary.ok:
        raise typer.Exit(code=1)


@app.command()
def path(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Dataset name, alias, DOI or key."),
    extract: Optional[bool] = typer.Option(None, "--extract/--no-extract", help="Override the entry's extract flag."),
) -> None:
    """Print the local path of a dataset."""
    manifest = _manifest(ctx)
    try:
        console.print(str(manifest.resolve_path(name, extract=extract)), soft_wrap=True, markup=False)
    except DataManifestError as exc:
        _fail(exc)


@app.command("search")
def search_command(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text to look for."),
    alt: bool = typer.Option(True, "--alt/--no-alt", help="Also match aliases, DOI, key and path."),
    partial: bool = typer.Option(False, "--partial", "-p", help="Accept substring matches."),
) -> None:
    """Search datasets by name, alias, DOI, key or path."""
    manifest = _manifest(ctx)
    matches = search(manifest, query, alt=alt, partial=partial)
    if not matches:
        console.print(f"[yellow]No dataset found for '{query}'.[/yellow]")
        raise typer.Exit(code=1)
    for dataset_name, entry in matches:
        console.print(f"[bold]{dataset_name}[/bold] {entry.key}")


@app.command("list")
def list_command(
    ctx: typer.Context,
    alt: bool = typer.Option(True, "--alt/--no-alt", help="Show aliases and DOI."),
) -> None:
    """List registered datasets."""
    manifest = _manifest(ctx)
    table = Table(title=f"Datasets ({manifest.datasets_path})")
    table.add_column("Name", style="bold")
    table.add_column("Key")
    table.add_column("Kind")
    if alt:
        table.add_column("Aliases / DOI")
    table.add_column("Local", justify="center")
    for dataset_name, entry in manifest.items():
        row = [dataset_name, entry.key, entry.kind]
        if alt:
            row.append(" | ".join([*entry.aliases, entry.doi] if entry.doi else entry.aliases))
        row.append("[green]yes[/green]" if manifest.resolve_path(entry).exists() else "no")
        table.add_row(*row)
    console.print(table)


@app.command("verify")
def verify_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Dataset name, alias, DOI or key."),
) -> None:
    """Verify the checksum of a fetched dataset (recording it if missing)."""
    manifest = _manifest(ctx)
    try:
        dataset_name, entry = search_one(manifest, name)  # type: ignore[misc]
        local_path = manifest.resolve_path(entry)
        if not local_path.exists():
            console.print(f"[yellow]{dataset_name} has not been fetched yet ({local_path}).[/yellow]")
            raise typer.Exit(code=1)
        verify(
            entry,
            local_path,
            manifest.flush,
            skip_checksum=manifest.skip_checksum,
            folder_checksum=manifest.folder_checksum,
        )
    except DataManifestError as exc:
        _fail(exc)
    _log("checksum.verified", name=dataset_name, sha256=entry.sha256 or "skipped")
    console.print(f"[bold green]{dataset_name}[/bold green] OK")
