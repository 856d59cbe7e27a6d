"""Tests for the personae CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from personae.cli.main import app
from personae.db.connection import Database
from personae.db.repository import OverrideStore

runner = CliRunner()

EDITED = "Rediģēts teksts par Annu Ozolu un viņas darbu bibliotēkā."


@pytest.fixture
def people(make_subject, people_root) -> Path:
    make_subject("Anna Ozola", images={"1.jpg": 2048})
    make_subject("Zane Liepa", images={"1.jpg": 2048})
    return people_root


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "cli.db"


def _args(*args: str, people: Path, db: Path) -> list[str]:
    return [*args, "--people-dir", str(people), "--db", str(db)]


def _override_count(db: Path) -> int:
    with Database(db) as conn:
        return OverrideStore(conn).count()


# ---------------------------------------------------------------------------
# personae --version
# ---------------------------------------------------------------------------


def test_version_flag_exits_zero() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "personae" in result.output


def test_version_command_exits_zero() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "personae" in result.output


# ---------------------------------------------------------------------------
# personae scan
# ---------------------------------------------------------------------------


def test_scan_reports_loaded_subjects(people: Path, make_subject) -> None:
    make_subject("Īsais", body="<p>Pārāk īss.</p>")
    result = runner.invoke(app, ["scan", "--people-dir", str(people)])
    assert result.exit_code == 0
    assert "Loaded" in result.output
    assert "Īsais" in result.output


def test_scan_missing_root_exits_1(tmp_path: Path) -> None:
    result = runner.invoke(app, ["scan", "--people-dir", str(tmp_path / "missing")])
    assert result.exit_code == 1
    assert "not accessible" in result.output


# ---------------------------------------------------------------------------
# personae list / show / search
# ---------------------------------------------------------------------------


def test_list_shows_profiles_and_migrates(people: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("list", people=people, db=db_path))
    assert result.exit_code == 0
    assert "anna-ozola" in result.output
    assert "zane-liepa" in result.output
    assert _override_count(db_path) == 2


def test_list_rejects_bad_source(people: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("list", "--source", "cache", people=people, db=db_path))
    assert result.exit_code == 1


def test_show_file_profile(people: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("show", "anna-ozola", people=people, db=db_path))
    assert result.exit_code == 0
    assert "Anna Ozola" in result.output
    assert "file" in result.output


def test_show_unknown_slug_exits_1(people: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("show", "nav-tada", people=people, db=db_path))
    assert result.exit_code == 1
    assert "No profile" in result.output


def test_show_missing_root_exits_1(tmp_path: Path, db_path: Path) -> None:
    result = runner.invoke(
        app, _args("show", "anna-ozola", people=tmp_path / "missing", db=db_path)
    )
    assert result.exit_code == 1


def test_search(people: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("search", "liepa", people=people, db=db_path))
    assert result.exit_code == 0
    assert "zane-liepa" in result.output
    assert "anna-ozola" not in result.output


# ---------------------------------------------------------------------------
# personae edit
# ---------------------------------------------------------------------------


def test_edit_with_content(people: Path, db_path: Path) -> None:
    result = runner.invoke(
        app, _args("edit", "anna-ozola", "--content", EDITED, "--by", "editor", people=people, db=db_path)
    )
    assert result.exit_code == 0
    assert "Updated" in result.output

    shown = runner.invoke(app, _args("show", "anna-ozola", people=people, db=db_path))
    assert "database" in shown.output
    assert "Rediģēts teksts" in shown.output


def test_edit_from_file(people: Path, db_path: Path, tmp_path: Path) -> None:
    text_file = tmp_path / "anna.txt"
    text_file.write_text(EDITED, encoding="utf-8")
    result = runner.invoke(
        app, _args("edit", "anna-ozola", "--file", str(text_file), people=people, db=db_path)
    )
    assert result.exit_code == 0
    assert _override_count(db_path) == 1


def test_edit_short_content_exits_1(people: Path, db_path: Path) -> None:
    result = runner.invoke(
        app, _args("edit", "anna-ozola", "--content", "short", people=people, db=db_path)
    )
    assert result.exit_code == 1
    assert "content_too_short" in result.output


def test_edit_without_content_exits_1(people: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("edit", "anna-ozola", people=people, db=db_path))
    assert result.exit_code == 1
    assert "No content" in result.output


def test_edit_unknown_slug_exits_1(people: Path, db_path: Path) -> None:
    result = runner.invoke(
        app, _args("edit", "nav-tada", "--content", EDITED, people=people, db=db_path)
    )
    assert result.exit_code == 1


# ---------------------------------------------------------------------------
# personae migrate / health / recover
# ---------------------------------------------------------------------------


def test_migrate_twice_skips_second_time(people: Path, db_path: Path) -> None:
    first = runner.invoke(app, _args("migrate", people=people, db=db_path))
    second = runner.invoke(app, _args("migrate", people=people, db=db_path))
    assert first.exit_code == 0
    assert second.exit_code == 0
    assert "Skipped: 2" in second.output
    assert _override_count(db_path) == 2


def test_health_healthy(people: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("health", people=people, db=db_path))
    assert result.exit_code == 0
    assert "healthy" in result.output


def test_health_failed_exits_1(tmp_path: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("health", people=tmp_path / "missing", db=db_path))
    assert result.exit_code == 1
    assert "failed" in result.output


def test_health_api_context(tmp_path: Path, db_path: Path) -> None:
    result = runner.invoke(
        app, _args("health", "--context", "api", people=tmp_path / "missing", db=db_path)
    )
    assert "service_not_initialized" in result.output
    assert "/api/status" in result.output


def test_recover_success(people: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("recover", people=people, db=db_path))
    assert result.exit_code == 0
    assert "Recovery successful" in result.output


def test_recover_missing_root_exits_1(tmp_path: Path, db_path: Path) -> None:
    result = runner.invoke(app, _args("recover", people=tmp_path / "missing", db=db_path))
    assert result.exit_code == 1
    assert "Recovery failed" in result.output


def test_verbose_flag_accepted(people: Path) -> None:
    result = runner.invoke(app, ["--verbose", "scan", "--people-dir", str(people)])
    assert result.exit_code == 0
