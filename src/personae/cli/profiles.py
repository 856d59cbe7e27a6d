"""personae list / show / edit / search — read and edit resolved profiles.

Usage:
  personae list
  personae show janis-berzins
  personae edit janis-berzins --file new-text.txt --by editor
  personae search ozols
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from personae.cli.common import DbOption, PeopleDirOption, console, open_service
from personae.cli.errors import (
    err_no_content,
    err_not_found,
    err_unavailable,
    err_validation,
)
from personae.errors import NotFound, ServiceUnavailable, ValidationError
from personae.models import ProfileSummary, ResolvedProfile


def list_cmd(
    people_dir: PeopleDirOption = None,
    db: DbOption = None,
    source: Annotated[
        Optional[str],
        typer.Option("--source", help="Only show profiles from 'database' or 'file'."),
    ] = None,
) -> None:
    """List every profile, overrides first in precedence, sorted by name."""
    if source is not None and source not in ("database", "file"):
        console.print(f"[red]Error:[/] --source must be 'database' or 'file', got '{source}'.")
        raise typer.Exit(1)

    with open_service(people_dir, db) as service:
        try:
            summaries = service.list_profiles()
        except ServiceUnavailable as exc:
            console.print(err_unavailable(exc.reason))
            raise typer.Exit(1) from exc

    if source is not None:
        summaries = [s for s in summaries if s.source == source]
    if not summaries:
        console.print("[dim]No profiles found.[/]")
        return
    console.print(_summary_table(summaries))


def search_cmd(
    query: Annotated[str, typer.Argument(help="Text to look for in names and content.")],
    people_dir: PeopleDirOption = None,
    db: DbOption = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum results.")] = 20,
) -> None:
    """Search profile names and effective content."""
    with open_service(people_dir, db) as service:
        try:
            results = service.search_profiles(query, limit=limit)
        except ServiceUnavailable as exc:
            console.print(err_unavailable(exc.reason))
            raise typer.Exit(1) from exc

    if not results:
        console.print(f"[dim]No profiles match '{escape(query)}'.[/]")
        return
    console.print(_summary_table(results))


def show_cmd(
    slug: Annotated[str, typer.Argument(help="Profile slug, e.g. janis-berzins.")],
    people_dir: PeopleDirOption = None,
    db: DbOption = None,
    full: Annotated[
        bool, typer.Option("--full", help="Print the whole text instead of a preview.")
    ] = False,
) -> None:
    """Show one resolved profile."""
    with open_service(people_dir, db) as service:
        try:
            profile = service.get_profile(slug)
        except NotFound as exc:
            console.print(err_not_found(slug))
            raise typer.Exit(1) from exc
        except ServiceUnavailable as exc:
            console.print(err_unavailable(exc.reason))
            raise typer.Exit(1) from exc

    _show_profile(profile, full=full)


def edit_cmd(
    slug: Annotated[str, typer.Argument(help="Profile slug to edit.")],
    content: Annotated[
        Optional[str], typer.Option("--content", "-c", help="New plain-text content.")
    ] = None,
    file: Annotated[
        Optional[Path],
        typer.Option("--file", "-f", exists=True, dir_okay=False, help="Read content from file."),
    ] = None,
    updated_by: Annotated[str, typer.Option("--by", help="Author recorded on the edit.")] = "admin",
    people_dir: PeopleDirOption = None,
    db: DbOption = None,
) -> None:
    """Replace a profile's text with an override."""
    if file is not None:
        content = file.read_text(encoding="utf-8")
    if content is None:
        console.print(err_no_content())
        raise typer.Exit(1)

    with open_service(people_dir, db) as service:
        try:
            profile = service.update_profile(slug, content, updated_by)
        except ValidationError as exc:
            console.print(err_validation(exc.code, exc.message))
            raise typer.Exit(1) from exc
        except NotFound as exc:
            console.print(err_not_found(slug))
            raise typer.Exit(1) from exc
        except ServiceUnavailable as exc:
            console.print(err_unavailable(exc.reason))
            raise typer.Exit(1) from exc

    console.print(
        f"[green]✓[/] Updated [bold]{escape(profile.name)}[/] "
        f"({profile.content.word_count} words, by {escape(profile.content.updated_by)})"
    )


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _summary_table(summaries: list[ProfileSummary]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Slug", style="dim")
    table.add_column("Source")
    table.add_column("Words", justify="right")
    table.add_column("Image", justify="center")
    for s in summaries:
        source = "[cyan]database[/]" if s.source == "database" else "file"
        table.add_row(
            escape(s.name),
            s.slug,
            source,
            str(s.word_count),
            "[green]✓[/]" if s.main_image else "[dim]—[/]",
        )
    return table


def _show_profile(profile: ResolvedProfile, *, full: bool) -> None:
    stamp = profile.content.last_updated
    updated = stamp.strftime("%Y-%m-%d %H:%M UTC") if stamp else "—"
    lines = [
        f"Slug:     {profile.slug}",
        f"Source:   {profile.source}",
        f"Updated:  {updated} by {escape(profile.content.updated_by)}",
        f"Words:    {profile.content.word_count}  |  Characters: {profile.content.character_count}",
        f"Images:   {len(profile.images)}",
    ]
    for image in profile.images:
        credit = f"  [dim]{escape(image.credit)}[/]" if image.credit else ""
        lines.append(f"  {image.order + 1}. {escape(image.path)}{credit}")
    console.print(Panel("\n".join(lines), title=f"[bold]{escape(profile.name)}[/]", expand=False))

    text = profile.content.text
    if not full and len(text) > 600:
        text = text[:600].rstrip() + " …"
    console.print(escape(text))
