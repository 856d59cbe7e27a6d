"""Shared CLI plumbing: config loading, option types, service startup."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from personae.cli.errors import err_config, err_people_dir
from personae.config import ConfigError, PersonaeConfig, load_config
from personae.db.connection import Database
from personae.db.schema import initialize
from personae.errors import ScanError
from personae.service import ProfileService

console = Console()

PeopleDirOption = Annotated[
    Optional[Path],
    typer.Option("--people-dir", help="Subjects root (overrides personae.yaml)."),
]
DbOption = Annotated[
    Optional[Path],
    typer.Option("--db", help="Path to the override database (overrides personae.yaml)."),
]


def load_cli_config(people_dir: Path | None = None, db: Path | None = None) -> PersonaeConfig:
    """Load personae.yaml from CWD and apply CLI flags on top."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    if people_dir is not None:
        cfg.paths.people_dir = people_dir
    if db is not None:
        cfg.paths.db = db
    return cfg


def open_db(cfg: PersonaeConfig) -> sqlite3.Connection:
    conn = Database(cfg.paths.db).connect()
    initialize(conn)
    return conn


@contextmanager
def open_service(
    people_dir: Path | None = None,
    db: Path | None = None,
    *,
    require_scan: bool = True,
) -> Iterator[ProfileService]:
    """Yield an initialized ``ProfileService``; the connection closes on exit.

    With ``require_scan`` a failed scan exits with status 1; without it the
    service is yielded in its failed state.
    """
    cfg = load_cli_config(people_dir, db)
    conn = open_db(cfg)
    try:
        service = ProfileService.from_config(cfg, conn)
        try:
            asyncio.run(service.initialize())
        except ScanError as exc:
            if require_scan:
                console.print(err_people_dir(str(cfg.paths.people_dir), str(exc)))
                raise typer.Exit(1) from exc
        yield service
    finally:
        conn.close()
