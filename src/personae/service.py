"""Profile service: resolves override and file data for each subject.

One ``ProfileService`` is built at application startup and handed to every
consumer. It owns:

- the current ``SubjectIndex`` snapshot (swapped wholesale on rescan),
- the ``OverrideStore`` used for admin-edited text,
- the initialization state the health report is computed from.

Precedence on read: override text wins, file images always win. Writes
update an existing override or create one seeded from the indexed subject.
"""

from __future__ import annotations

import asyncio
import html
import logging
import re
import sqlite3
from dataclasses import replace

from personae.config import HealthCfg, MigrationCfg, PersonaeConfig
from personae.db.repository import OverrideStore
from personae.errors import (
    DuplicateSlug,
    MigrationError,
    NotFound,
    ScanError,
    ServiceUnavailable,
    ValidationError,
)
from personae.health import (
    CallerContext,
    DegradationResponse,
    HealthReport,
    HealthStatus,
    assess,
    degradation_response,
)
from personae.index import SubjectIndex, latvian_sort_key
from personae.ingest.scanner import DirectoryScanner, ScanReport
from personae.models import (
    MigrationItemError,
    MigrationResult,
    OverrideRecord,
    ProfileContent,
    ProfileSummary,
    ResolvedProfile,
    SubjectRecord,
    content_preview,
    validate_content,
    validate_updated_by,
)

logger = logging.getLogger(__name__)

FILE_SYSTEM_AUTHOR = "file-system"
_BLOCK_SPLIT_RE = re.compile(r"\n[ \t]*\n+")
_NON_WHITESPACE_RE = re.compile(r"\s")


def text_to_html(text: str) -> str:
    """Render plain text as paragraphs: blank lines split ``<p>``, newlines become ``<br>``."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not normalized:
        return ""
    paragraphs = []
    for block in _BLOCK_SPLIT_RE.split(normalized):
        lines = [html.escape(line.strip()) for line in block.split("\n")]
        paragraphs.append("<p>" + "<br>".join(lines) + "</p>")
    return "\n".join(paragraphs)


class ProfileService:
    """Reads, writes and health for subject profiles."""

    def __init__(
        self,
        scanner: DirectoryScanner,
        store: OverrideStore,
        *,
        health: HealthCfg | None = None,
        migration: MigrationCfg | None = None,
    ) -> None:
        self._scanner = scanner
        self._store = store
        self._health_cfg = health or HealthCfg()
        self._migration_cfg = migration or MigrationCfg()

        self._index = SubjectIndex()
        self._initialized = False
        self._attempted = False
        self._last_error: str | None = None
        self._last_report: ScanReport | None = None
        self._migration_checked = False

        self._pending: asyncio.Task[None] | None = None
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def from_config(cls, cfg: PersonaeConfig, conn: sqlite3.Connection) -> ProfileService:
        """Wire a service from configuration and an initialised database connection."""
        scanner = DirectoryScanner(
            cfg.paths.people_dir,
            url_prefix=cfg.media.url_prefix,
            max_workers=cfg.scan.max_workers,
        )
        return cls(scanner, OverrideStore(conn), health=cfg.health, migration=cfg.migration)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def index(self) -> SubjectIndex:
        return self._index

    @property
    def store(self) -> OverrideStore:
        return self._store

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def last_report(self) -> ScanReport | None:
        return self._last_report

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def is_ready(self) -> bool:
        return self._initialized and len(self._index) > 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Scan the subjects root once; concurrent and repeated calls share that scan.

        Raises:
            ScanError: If the subjects root is inaccessible. The service then
                stays in the ``failed`` state until ``recover()`` succeeds.
        """
        if self._attempted:
            return
        loop = asyncio.get_running_loop()
        if self._pending is None or self._pending.get_loop() is not loop:
            self._pending = loop.create_task(self._initial_scan())
        # Every caller waits on the same task and sees its ScanError.
        await asyncio.shield(self._pending)

    async def recover(self) -> bool:
        """Rescan and swap in the new index. True if it holds any subject.

        Readers keep the previous snapshot until the rescan completes. A
        failed rescan puts the service in the ``failed`` state.
        """
        logger.info("Attempting profile service recovery")
        async with self._get_lock():
            try:
                await self._scan()
            except ScanError as exc:
                logger.error("Recovery failed: %s", exc)
                return False
        if not self._index.count():
            logger.warning("Recovery partially successful: initialized but no data loaded")
            return False
        logger.info("Recovery successful: %d subjects loaded", self._index.count())
        return True

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _initial_scan(self) -> None:
        try:
            await self._scan()
        finally:
            self._pending = None

    async def _scan(self) -> None:
        try:
            result = await self._scanner.scan_async()
        except ScanError as exc:
            self._index, self._initialized = SubjectIndex(), False
            self._last_error = str(exc)
            logger.error("Profile service is in failed state: %s", exc)
            raise
        finally:
            self._attempted = True
        self._index, self._last_report = result.index, result.report
        self._initialized = True
        self._last_error = None
        if not result.index.count():
            logger.warning("No people profiles were loaded from %s", self._scanner.root)

    def _require_ready(self) -> None:
        if not self._initialized:
            raise ServiceUnavailable(
                self._last_error or "The people data service is not initialized."
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_profiles(self) -> list[ProfileSummary]:
        """Summaries of every known subject, sorted by name.

        Subjects with an override are listed from the store (source
        ``database``); the rest from the index (source ``file``). The first
        call that finds an empty store migrates the index into it when
        auto-migration is enabled.
        """
        self._require_ready()
        self._maybe_auto_migrate()

        summaries: list[ProfileSummary] = []
        covered: set[str] = set()
        for override in self._store.get_all():
            covered.add(override.person_slug)
            summaries.append(self._override_summary(override))
        for record in self._index:
            if record.slug not in covered:
                summaries.append(_file_summary(record))
        return sorted(summaries, key=lambda s: latvian_sort_key(s.name))

    def search_profiles(self, query: str, limit: int = 50) -> list[ProfileSummary]:
        """Summaries whose name or effective text contains *query*."""
        self._require_ready()
        term = query.strip().lower() if query else ""
        if not term:
            return []
        results: list[ProfileSummary] = []
        overridden: set[str] = set()
        for override in self._store.get_all():
            overridden.add(override.person_slug)
            name = self._display_name(override)
            if term in name.lower() or term in override.content.lower():
                results.append(self._override_summary(override))
        for record in self._index.search(term):
            if record.slug not in overridden:
                results.append(_file_summary(record))
        return sorted(results, key=lambda s: latvian_sort_key(s.name))[: max(1, limit)]

    def get_profile(self, slug: str) -> ResolvedProfile:
        """Resolve one subject: override text if present, file data otherwise.

        Raises:
            ServiceUnavailable: If the service is not initialized.
            NotFound: If neither source knows *slug*.
        """
        self._require_ready()
        override = self._store.find_by_slug(slug)
        subject = self._index.get(slug)
        if override is not None:
            return _resolve_override(override, subject)
        if subject is not None:
            return _resolve_file(subject)
        raise NotFound(slug)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_profile(self, slug: str, content: str, updated_by: str = "admin") -> ResolvedProfile:
        """Store admin-edited text for *slug* and return the resolved profile.

        Updates the existing override, or creates one named after the indexed
        subject.

        Raises:
            ValidationError: Content outside 10..50,000 characters, or a bad author.
            NotFound: If *slug* is in neither the store nor the index.
            ServiceUnavailable: If the service is not initialized.
        """
        self._require_ready()
        stripped = validate_content(content)
        validate_updated_by(updated_by)

        if self._store.exists(slug):
            self._store.update(slug, stripped, updated_by)
        else:
            subject = self._index.get(slug)
            if subject is None:
                raise NotFound(slug)
            try:
                self._store.create(slug, subject.name, stripped, updated_by)
            except DuplicateSlug:
                self._store.update(slug, stripped, updated_by)
        logger.info("Updated content for %s by %s (%d characters)", slug, updated_by, len(stripped))
        return self.get_profile(slug)

    def migrate(self, updated_by: str | None = None) -> MigrationResult:
        """Copy every indexed subject's text into the override store.

        Slugs that already have an override are skipped. Items failing
        validation are reported in the result; any other error rolls back the
        whole batch.

        Raises:
            MigrationError: On a batch-level failure (nothing is kept).
            ServiceUnavailable: If the service is not initialized.
        """
        self._require_ready()
        author = updated_by or self._migration_cfg.updated_by
        result = MigrationResult()
        records = self._index.all()
        logger.info("Starting migration of %d people from files to the store", len(records))

        try:
            with self._store.transaction():
                for record in records:
                    result.total += 1
                    if self._store.exists(record.slug):
                        result.skipped += 1
                        continue
                    try:
                        self._store.create(record.slug, record.name, record.content.text, author)
                    except ValidationError as exc:
                        result.failed += 1
                        result.errors.append(
                            MigrationItemError(record.slug, record.name, exc.message)
                        )
                        logger.warning("Failed to migrate %s: %s", record.name, exc.message)
                        continue
                    result.successful += 1
        except Exception as exc:
            logger.error("Migration failed and was rolled back: %s", exc)
            raise MigrationError(f"Migration failed: {exc}") from exc

        self._migration_checked = True
        logger.info(
            "Migration completed: %d successful, %d skipped, %d failed (of %d)",
            result.successful,
            result.skipped,
            result.failed,
            result.total,
        )
        return result

    def _maybe_auto_migrate(self) -> None:
        if self._migration_checked or not self._migration_cfg.auto_migrate:
            return
        if self._store.count() > 0:
            self._migration_checked = True
            return
        if not self._index.count():
            return
        try:
            self.migrate()
        except MigrationError as exc:
            logger.warning("Automatic migration failed, serving file content: %s", exc)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def get_health(self) -> HealthReport:
        report = assess(
            self._index,
            self._initialized,
            max_missing_images_ratio=self._health_cfg.max_missing_images_ratio,
            max_insufficient_content_ratio=self._health_cfg.max_insufficient_content_ratio,
            last_error=self._last_error,
        )
        try:
            overrides = self._store.count()
        except sqlite3.Error as exc:
            logger.error("Override store unavailable: %s", exc)
            status = HealthStatus.DEGRADED if report.status is HealthStatus.HEALTHY else report.status
            return replace(
                report,
                status=status,
                issues=report.issues + (f"Override store unavailable: {exc}",),
            )
        return replace(report, counts={**report.counts, "overrides": overrides})

    def degradation(self, context: CallerContext | str = CallerContext.GENERAL) -> DegradationResponse:
        return degradation_response(self.get_health(), context)

    # ------------------------------------------------------------------
    # Projection helpers
    # ------------------------------------------------------------------

    def _display_name(self, override: OverrideRecord) -> str:
        """The indexed subject's name; the stored name only for unindexed slugs."""
        subject = self._index.get(override.person_slug)
        return subject.name if subject else override.person_name

    def _override_summary(self, override: OverrideRecord) -> ProfileSummary:
        return ProfileSummary(
            slug=override.person_slug,
            name=self._display_name(override),
            last_updated=override.updated_at,
            updated_by=override.updated_by,
            content_preview=override.preview(),
            word_count=override.word_count,
            main_image=self._index.main_image(override.person_slug),
            source="database",
        )


def _file_summary(record: SubjectRecord) -> ProfileSummary:
    return ProfileSummary(
        slug=record.slug,
        name=record.name,
        last_updated=record.metadata.last_modified,
        updated_by=FILE_SYSTEM_AUTHOR,
        content_preview=content_preview(record.content.text),
        word_count=record.metadata.word_count,
        main_image=record.main_image,
        source="file",
    )


def _resolve_override(override: OverrideRecord, subject: SubjectRecord | None) -> ResolvedProfile:
    return ResolvedProfile(
        slug=override.person_slug,
        name=subject.name if subject else override.person_name,
        content=ProfileContent(
            html=text_to_html(override.content),
            text=override.content,
            word_count=override.word_count,
            character_count=override.character_count,
            last_updated=override.updated_at,
            updated_by=override.updated_by,
        ),
        images=subject.images if subject else (),
        metadata=subject.metadata if subject else None,
        source="database",
    )


def _resolve_file(subject: SubjectRecord) -> ResolvedProfile:
    text = subject.content.text
    return ResolvedProfile(
        slug=subject.slug,
        name=subject.name,
        content=ProfileContent(
            html=subject.content.html,
            text=text,
            word_count=subject.content.word_count,
            character_count=len(_NON_WHITESPACE_RE.sub("", text)),
            last_updated=subject.metadata.last_modified,
            updated_by=FILE_SYSTEM_AUTHOR,
            photo_credits=subject.content.photo_credits,
        ),
        images=subject.images,
        metadata=subject.metadata,
        source="file",
    )
