"""personae scan / migrate / health / recover — operator commands.

Usage:
  personae scan --people-dir public/media/people
  personae migrate --by importer
  personae health --context admin
  personae recover
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from personae.cli.common import DbOption, PeopleDirOption, console, load_cli_config, open_service
from personae.cli.errors import err_migration, err_people_dir, err_unavailable, warn_failed_subjects
from personae.errors import MigrationError, ScanError, ServiceUnavailable
from personae.health import CallerContext, DegradationResponse, HealthReport, HealthStatus
from personae.ingest.scanner import DirectoryScanner, ScanReport

_STATUS_STYLE = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.DEGRADED: "yellow",
    HealthStatus.FAILED: "red",
}


def scan_cmd(
    people_dir: PeopleDirOption = None,
    show_failures: Annotated[
        bool, typer.Option("--failures/--no-failures", help="List skipped subjects.")
    ] = True,
) -> None:
    """Scan the people directory and report what would be loaded."""
    cfg = load_cli_config(people_dir)
    scanner = DirectoryScanner(
        cfg.paths.people_dir,
        url_prefix=cfg.media.url_prefix,
        max_workers=cfg.scan.max_workers,
    )
    try:
        result = asyncio.run(scanner.scan_async())
    except ScanError as exc:
        console.print(err_people_dir(str(cfg.paths.people_dir), str(exc)))
        raise typer.Exit(1) from exc

    _show_scan_panel(result.report)
    if result.report.failures and show_failures:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Directory")
        table.add_column("Reason", style="yellow")
        for failure in result.report.failures:
            table.add_row(escape(failure.name), escape(failure.reason))
        console.print(table)
    elif result.report.failures:
        console.print(warn_failed_subjects(result.report.failed))


def migrate_cmd(
    people_dir: PeopleDirOption = None,
    db: DbOption = None,
    updated_by: Annotated[
        Optional[str], typer.Option("--by", help="Author recorded on migrated rows.")
    ] = None,
) -> None:
    """Copy file content of every subject without an override into the database."""
    with open_service(people_dir, db) as service:
        try:
            result = service.migrate(updated_by)
        except MigrationError as exc:
            console.print(err_migration(str(exc)))
            raise typer.Exit(1) from exc
        except ServiceUnavailable as exc:
            console.print(err_unavailable(exc.reason))
            raise typer.Exit(1) from exc

    console.print(
        Panel(
            f"Total: [bold]{result.total}[/]  |  "
            f"Migrated: [green]{result.successful}[/]  |  "
            f"Skipped: {result.skipped}  |  "
            f"Failed: [red]{result.failed}[/]",
            title="[bold]Migration[/]",
            expand=False,
        )
    )
    for error in result.errors:
        console.print(f"  [red]✗[/] {escape(error.name)} ({error.slug}): {escape(error.reason)}")


def health_cmd(
    people_dir: PeopleDirOption = None,
    db: DbOption = None,
    context: Annotated[
        Optional[CallerContext],
        typer.Option("--context", help="Also show the degradation response for this caller."),
    ] = None,
) -> None:
    """Show the health of the people data service."""
    with open_service(people_dir, db, require_scan=False) as service:
        report = service.get_health()
        response = service.degradation(context) if context is not None else None

    _show_health_panel(report)
    if response is not None:
        _show_degradation(response)
    if report.status is HealthStatus.FAILED:
        raise typer.Exit(1)


def recover_cmd(
    people_dir: PeopleDirOption = None,
    db: DbOption = None,
) -> None:
    """Clear the index and rescan the people directory."""
    with open_service(people_dir, db, require_scan=False) as service:
        recovered = asyncio.run(service.recover())
        report = service.get_health()

    _show_health_panel(report)
    if not recovered:
        console.print("[red]✗[/] Recovery failed.")
        raise typer.Exit(1)
    console.print("[green]✓[/] Recovery successful.")


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_scan_panel(report: ScanReport) -> None:
    lines = [
        f"Root:      {escape(str(report.root))}",
        f"Subjects:  [bold]{report.total}[/]  |  "
        f"Loaded: [green]{report.successful}[/]  |  "
        f"Skipped: [yellow]{report.failed}[/]",
        f"Success:   {report.success_rate}%  in {report.duration_ms} ms",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Scan[/]", expand=False))


def _show_health_panel(report: HealthReport) -> None:
    style = _STATUS_STYLE[report.status]
    lines = [f"Status:  [{style}]{report.status.value}[/]"]
    counts = report.counts
    lines.append(
        f"People: [bold]{counts.get('people', 0)}[/]  |  "
        f"With images: {counts.get('with_images', 0)}  |  "
        f"With content: {counts.get('with_content', 0)}"
    )
    if "overrides" in counts:
        lines.append(f"Overrides: {counts['overrides']}")
    for issue in report.issues:
        lines.append(f"  [{style}]•[/] {escape(issue)}")
    console.print(Panel("\n".join(lines), title="[bold]Health[/]", expand=False))


def _show_degradation(response: DegradationResponse) -> None:
    lines = [
        f"Available:  {'yes' if response.available else 'no'}",
        f"Reason:     {response.reason}",
        f"Message:    {escape(response.message)}",
    ]
    if response.technical_details:
        lines.append(f"Details:    {escape(response.technical_details)}")
    if response.retry_after is not None:
        lines.append(f"Retry after: {response.retry_after}s")
    for endpoint in response.fallback_endpoints:
        lines.append(f"  fallback: {endpoint}")
    for suggestion in response.recovery_suggestions:
        lines.append(f"  [ ] {escape(suggestion)}")
    console.print(
        Panel("\n".join(lines), title=f"[bold]Degradation ({response.context.value})[/]", expand=False)
    )
