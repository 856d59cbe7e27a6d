"""personae rich error messages — what went wrong, and what to do about it.

Usage:
    from personae.cli.errors import err_not_found
    console.print(err_not_found(slug))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_people_dir(path: str, detail: str = "") -> str:
    """Subjects root missing or unreadable."""
    extra = f"\n  Detail: {detail}" if detail else ""
    return (
        f"[red]Error:[/] People directory not accessible: '{path}'.{extra}\n"
        "  Pass --people-dir, set PERSONAE_PEOPLE_DIR, or set paths.people_dir in personae.yaml."
    )


def err_config(detail: str) -> str:
    """personae.yaml contains an invalid value."""
    return f"[red]Error:[/] Invalid configuration: {detail}\n  Fix personae.yaml and retry."


def err_not_found(slug: str) -> str:
    return (
        f"[red]Error:[/] No profile with slug '{slug}'.\n"
        "  Run:  personae list  to see all known profiles."
    )


def err_validation(code: str, message: str) -> str:
    return f"[red]Error:[/] {message} [dim]({code})[/]"


def err_unavailable(reason: str) -> str:
    return (
        f"[red]Error:[/] The people data service is unavailable: {reason}\n"
        "  Run:  personae recover  after fixing the people directory."
    )


def err_migration(detail: str) -> str:
    return (
        f"[red]Error:[/] Migration failed and was rolled back: {detail}\n"
        "  No overrides were written. Check the database file and retry."
    )


def err_no_content() -> str:
    return (
        "[red]Error:[/] No content given.\n"
        "  Use:  personae edit <slug> --content 'text'  or  --file path.txt"
    )


def warn_failed_subjects(count: int) -> str:
    return (
        f"[yellow]⚠[/] {count} subject directories were skipped.\n"
        "  Run:  personae scan --verbose  for per-subject details."
    )
