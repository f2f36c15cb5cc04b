"""CLI smoke tests for datamanifest."""

from typer.testing import CliRunner

from datamanifest import __version__
from datamanifest.cli import app


def test_cli_help() -> None:
    """Ensure the CLI help screen renders without error."""
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Usage" in result.stdout


def test_cli_version() -> None:
    """The version flag prints the package version and exits."""
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout
