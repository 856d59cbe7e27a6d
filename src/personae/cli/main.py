"""personae CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from personae.cli.maintenance import health_cmd, migrate_cmd, recover_cmd, scan_cmd
from personae.cli.profiles import edit_cmd, list_cmd, search_cmd, show_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("personae")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"personae {_version()}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


app = typer.Typer(
    name="personae",
    help=(
        "personae — people profiles from HTML directories, with database overrides.\n\n"
        "  personae scan     Check what the people directory would load.\n"
        "  personae list     All profiles, override text taking precedence."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log per-subject details."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """personae — people profiles from HTML directories, with database overrides."""
    _configure_logging(verbose)


app.command("scan")(scan_cmd)
app.command("list")(list_cmd)
app.command("show")(show_cmd)
app.command("edit")(edit_cmd)
app.command("search")(search_cmd)
app.command("migrate")(migrate_cmd)
app.command("health")(health_cmd)
app.command("recover")(recover_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed personae version."""
    typer.echo(f"personae {_version()}")


if __name__ == "__main__":
    app()
