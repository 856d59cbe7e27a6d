"""Override store — data access for the ``people_content`` table.

Every write validates through ``personae.models`` first, so nothing outside
the record invariants reaches the table. Writes commit immediately unless
they run inside ``transaction()``, which wraps them in one
BEGIN … COMMIT/ROLLBACK.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

from personae.errors import DuplicateSlug, NotFound
from personae.models import OverrideRecord, validate_content, validate_updated_by

_COLUMNS = "id, person_slug, person_name, content, created_at, updated_at, updated_by"
_MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class OverridePage:
    records: list[OverrideRecord]
    limit: int
    offset: int
    total: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)


@dataclass(frozen=True)
class StoreStats:
    total_records: int
    average_length: int
    min_length: int
    max_length: int
    updates_by_user: list[tuple[str, int]] = field(default_factory=list)


class OverrideStore:
    """Typed access to admin-edited profile content keyed by person slug.

    Wraps an open sqlite3.Connection owned by the caller (schema initialised
    via ``personae.db.schema.initialize``).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._in_transaction = False

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[OverrideStore]:
        """Run the enclosed writes as one unit; any exception rolls all of them back."""
        if self._in_transaction:
            raise RuntimeError("OverrideStore transactions cannot be nested")
        if self._conn.in_transaction:
            self._conn.commit()
        self._conn.execute("BEGIN")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()
        finally:
            self._in_transaction = False

    def _commit(self) -> None:
        if not self._in_transaction:
            self._conn.commit()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self, slug: str, name: str, content: str, updated_by: str = "system"
    ) -> OverrideRecord:
        """Insert a new override.

        Args:
            slug: Person slug (unique key).
            name: Display name stored alongside the content.
            content: Plain text; stripped before validation and storage.
            updated_by: Username recorded as the author.

        Returns:
            The stored record, including id and timestamps.

        Raises:
            ValidationError: If any field violates the record invariants.
            DuplicateSlug: If *slug* already has an override.
        """
        record = OverrideRecord(
            person_slug=slug,
            person_name=name,
            content=validate_content(content),
            updated_by=updated_by,
        )
        if self.exists(slug):
            raise DuplicateSlug(slug)
        try:
            self._conn.execute(
                """
                INSERT INTO people_content (person_slug, person_name, content, updated_by)
                VALUES (?, ?, ?, ?)
                """,
                (record.person_slug, record.person_name, record.content, record.updated_by),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateSlug(slug) from exc
        self._commit()
        return self._require(slug)

    def update(self, slug: str, content: str, updated_by: str = "system") -> OverrideRecord:
        """Replace the content of an existing override.

        Raises:
            ValidationError: If *content* or *updated_by* is invalid.
            NotFound: If *slug* has no override.
        """
        stripped = validate_content(content)
        validate_updated_by(updated_by)
        cur = self._conn.execute(
            """
            UPDATE people_content
            SET content = ?, updated_by = ?, updated_at = datetime('now')
            WHERE person_slug = ?
            """,
            (stripped, updated_by, slug),
        )
        if cur.rowcount == 0:
            raise NotFound(slug)
        self._commit()
        return self._require(slug)

    def delete(self, slug: str) -> None:
        """Delete the override for *slug*. Raises NotFound if there is none."""
        cur = self._conn.execute("DELETE FROM people_content WHERE person_slug = ?", (slug,))
        if cur.rowcount == 0:
            raise NotFound(slug)
        self._commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_slug(self, slug: str) -> OverrideRecord | None:
        if not slug:
            return None
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM people_content WHERE person_slug = ?", (slug,)
        ).fetchone()
        return _row_to_record(row) if row else None

    def exists(self, slug: str) -> bool:
        if not slug:
            return False
        return (
            self._conn.execute(
                "SELECT 1 FROM people_content WHERE person_slug = ?", (slug,)
            ).fetchone()
            is not None
        )

    def get_all(self) -> list[OverrideRecord]:
        """All overrides ordered by person name."""
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM people_content ORDER BY person_name ASC"
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM people_content").fetchone()[0]

    def search(self, query: str, limit: int = 10) -> list[OverrideRecord]:
        """Overrides whose name or content contains *query* (ASCII case-insensitive)."""
        if not query or not query.strip():
            return []
        term = "%" + _escape_like(query.strip()) + "%"
        rows = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM people_content
            WHERE person_name LIKE ? ESCAPE '\\' OR content LIKE ? ESCAPE '\\'
            ORDER BY person_name ASC
            LIMIT ?
            """,
            (term, term, _clamp_limit(limit)),
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    def page(self, limit: int = 10, offset: int = 0) -> OverridePage:
        """One page of overrides ordered by name; limit is clamped to 1..100."""
        limit = _clamp_limit(limit)
        offset = max(0, int(offset))
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM people_content ORDER BY person_name ASC LIMIT ? OFFSET ?",
            (limit, offset),
        ).fetchall()
        return OverridePage(
            records=[_row_to_record(r) for r in rows],
            limit=limit,
            offset=offset,
            total=self.count(),
        )

    def stats(self) -> StoreStats:
        row = self._conn.execute(
            """
            SELECT COUNT(*) AS total,
                   AVG(LENGTH(content)) AS avg_length,
                   MIN(LENGTH(content)) AS min_length,
                   MAX(LENGTH(content)) AS max_length
            FROM people_content
            """
        ).fetchone()
        by_user = self._conn.execute(
            """
            SELECT COALESCE(updated_by, '') AS updated_by, COUNT(*) AS n
            FROM people_content
            GROUP BY updated_by
            ORDER BY n DESC, updated_by ASC
            """
        ).fetchall()
        return StoreStats(
            total_records=row["total"],
            average_length=round(row["avg_length"] or 0),
            min_length=row["min_length"] or 0,
            max_length=row["max_length"] or 0,
            updates_by_user=[(r["updated_by"], r["n"]) for r in by_user],
        )

    def _require(self, slug: str) -> OverrideRecord:
        record = self.find_by_slug(slug)
        if record is None:
            raise NotFound(slug)
        return record


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _clamp_limit(limit: int) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        value = 10
    return max(1, min(_MAX_PAGE_SIZE, value))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_record(row: sqlite3.Row) -> OverrideRecord:
    return OverrideRecord(
        id=row["id"],
        person_slug=row["person_slug"],
        person_name=row["person_name"],
        content=row["content"],
        updated_by=row["updated_by"] or "system",
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"]),
    )


def _parse_timestamp(value: str | None) -> datetime | None:
    """Read a SQLite ``datetime('now')`` value, which is UTC without an offset."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
