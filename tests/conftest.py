"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from personae.db.connection import Database
from personae.db.schema import initialize

BIO_TEXT = (
    "Jānis ir dzimis Rīgā un visu mūžu strādājis par skolotāju vidusskolā, "
    "kur mācīja vēsturi un ģeogrāfiju."
)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".personae.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def people_root(tmp_path) -> Path:
    """Empty subjects root."""
    root = tmp_path / "people"
    root.mkdir()
    return root


@pytest.fixture
def make_subject(people_root):
    """Factory writing one subject directory under people_root.

    ``images`` maps filename → size in bytes.
    """

    def _make(
        name: str,
        body: str | None = None,
        images: dict[str, int] | None = None,
        html_name: str = "profile.html",
    ) -> Path:
        subject_dir = people_root / name
        subject_dir.mkdir()
        html = body if body is not None else f"<html><body><p>{BIO_TEXT}</p></body></html>"
        (subject_dir / html_name).write_text(html, encoding="utf-8")
        if images:
            images_dir = subject_dir / "images"
            images_dir.mkdir()
            for filename, size in images.items():
                (images_dir / filename).write_bytes(b"\xff" * size)
        return subject_dir

    return _make
