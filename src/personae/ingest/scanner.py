"""Directory scanner — subjects root → ``SubjectIndex``.

Layout expected under the root::

    <root>/
      Person Name/
        person.html
        images/
          photo1.jpg

Each subject is processed independently. Any failure inside one subject is
logged and recorded in the ``ScanReport``; the subject is left out of the
index and scanning moves on. Only an inaccessible root aborts the scan
(``ScanError``).
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from personae.errors import ScanError
from personae.index import SubjectIndex
from personae.ingest.images import DEFAULT_URL_PREFIX, associate_credits, collect_images
from personae.ingest.markup import extract_content, load_document
from personae.ingest.slug import clean_name, slugify
from personae.models import (
    MIN_SUBJECT_TEXT_LENGTH,
    SubjectContent,
    SubjectMetadata,
    SubjectRecord,
)

logger = logging.getLogger(__name__)

_DEFAULT_WORKERS = 8


@dataclass(frozen=True)
class SubjectFailure:
    name: str
    reason: str
    duration_ms: int


@dataclass
class ScanReport:
    root: Path
    total: int = 0
    successful: int = 0
    failed: int = 0
    failures: list[SubjectFailure] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success_rate(self) -> int:
        return round(self.successful / self.total * 100) if self.total else 0


@dataclass(frozen=True)
class ScanResult:
    index: SubjectIndex
    report: ScanReport


@dataclass(frozen=True)
class _Outcome:
    dir_name: str
    record: SubjectRecord | None
    reason: str | None
    duration_ms: int


class DirectoryScanner:
    """Scan a subjects root and build a fresh, immutable ``SubjectIndex``."""

    def __init__(
        self,
        root: Path | str,
        *,
        url_prefix: str = DEFAULT_URL_PREFIX,
        max_workers: int = _DEFAULT_WORKERS,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.root = Path(root)
        self.url_prefix = url_prefix
        self.max_workers = max_workers

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def scan(self) -> ScanResult:
        """Scan synchronously, one subject after another."""
        started = time.monotonic()
        subject_dirs = self._list_subject_dirs()
        outcomes = [self._process(d) for d in subject_dirs]
        return self._assemble(outcomes, started)

    async def scan_async(self) -> ScanResult:
        """Scan with subjects processed in worker threads (at most ``max_workers`` at once)."""
        started = time.monotonic()
        subject_dirs = await asyncio.to_thread(self._list_subject_dirs)
        semaphore = asyncio.Semaphore(self.max_workers)

        async def process(subject_dir: Path) -> _Outcome:
            async with semaphore:
                return await asyncio.to_thread(self._process, subject_dir)

        outcomes = await asyncio.gather(*(process(d) for d in subject_dirs))
        return self._assemble(list(outcomes), started)

    def build_subject(self, subject_dir: Path) -> SubjectRecord | None:
        """Build one ``SubjectRecord``; None when the subject has no usable content.

        Raises whatever the filesystem or record validation raises; ``scan``
        isolates those per subject.
        """
        dir_name = subject_dir.name
        slug = slugify(dir_name)

        html = load_document(subject_dir, dir_name)
        if html is None:
            return None
        content = extract_content(html, dir_name)
        if content is None:
            return None
        if len(content.text) < MIN_SUBJECT_TEXT_LENGTH:
            logger.warning(
                "Content too short for %s (%d characters) - skipping",
                dir_name,
                len(content.text),
            )
            return None

        images = associate_credits(
            collect_images(subject_dir, self.url_prefix), content.photo_credits
        )
        if content.photo_credits:
            logger.debug(
                "Associated %d photo credits with %d images for %s",
                len(content.photo_credits),
                len(images),
                dir_name,
            )

        return SubjectRecord(
            slug=slug,
            name=clean_name(dir_name),
            content=content,
            images=tuple(images),
            metadata=_metadata(subject_dir, content, len(images)),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _list_subject_dirs(self) -> list[Path]:
        if not self.root.is_dir():
            raise ScanError(f"People directory not accessible: {self.root}")
        try:
            return sorted(entry for entry in self.root.iterdir() if entry.is_dir())
        except OSError as exc:
            raise ScanError(f"Cannot list people directory {self.root}: {exc}") from exc

    def _process(self, subject_dir: Path) -> _Outcome:
        started = time.monotonic()
        try:
            record = self.build_subject(subject_dir)
            reason = None if record is not None else "No valid data found"
        except Exception as exc:
            logger.error("Failed to process %s: %s", subject_dir.name, exc)
            record, reason = None, str(exc) or exc.__class__.__name__
        return _Outcome(subject_dir.name, record, reason, _elapsed_ms(started))

    def _assemble(self, outcomes: list[_Outcome], started: float) -> ScanResult:
        report = ScanReport(root=self.root, total=len(outcomes))
        records: list[SubjectRecord] = []
        seen: set[str] = set()

        for outcome in outcomes:
            record, reason = outcome.record, outcome.reason
            if record is not None and record.slug in seen:
                record, reason = None, f"Duplicate slug '{record.slug}'"
            if record is None:
                logger.warning("Skipped: %s (%s)", outcome.dir_name, reason)
                report.failed += 1
                report.failures.append(
                    SubjectFailure(outcome.dir_name, reason or "unknown", outcome.duration_ms)
                )
                continue
            seen.add(record.slug)
            records.append(record)
            report.successful += 1

        report.duration_ms = _elapsed_ms(started)
        logger.info(
            "Scanned %s: %d/%d subjects loaded (%d failed) in %dms",
            self.root,
            report.successful,
            report.total,
            report.failed,
            report.duration_ms,
        )
        return ScanResult(index=SubjectIndex(records), report=report)


def _metadata(subject_dir: Path, content: SubjectContent, image_count: int) -> SubjectMetadata:
    try:
        last_modified = datetime.fromtimestamp(subject_dir.stat().st_mtime, tz=timezone.utc)
    except OSError as exc:
        logger.warning("Failed to stat %s: %s", subject_dir, exc)
        last_modified = datetime.now(timezone.utc)
    return SubjectMetadata(
        last_modified=last_modified,
        word_count=content.word_count,
        image_count=image_count,
        has_content=len(content.text) > 0,
        content_length=len(content.text),
    )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
