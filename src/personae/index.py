"""In-memory subject index.

A ``SubjectIndex`` is an immutable snapshot: every operation is a read-only
projection, and a rescan produces a new index instead of editing this one.
Holders swap the reference, so concurrent readers always see one complete
snapshot.
"""

from __future__ import annotations

import random as _random
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator

from personae.models import (
    MIN_SUBJECT_TEXT_LENGTH,
    PREVIEW_LENGTH,
    ImageDescriptor,
    SubjectRecord,
    content_preview,
)

# Latvian alphabet order. Long vowels (ā ē ī ū) and ō collate with their base
# letter and only break ties; č ģ ķ ļ ņ š ž are letters of their own.
_LATVIAN_ALPHABET = "aābcčdeēfgģhiījkķlļmnņoōprsštuūvzž"
_SECONDARY_ONLY = {"ā": "a", "ē": "e", "ī": "i", "ō": "o", "ū": "u"}
_PRIMARY_RANK: dict[str, int] = {}
for _ch in _LATVIAN_ALPHABET:
    if _ch in _SECONDARY_ONLY:
        continue
    _PRIMARY_RANK[_ch] = len(_PRIMARY_RANK)


def latvian_sort_key(value: str) -> tuple:
    """Collation key approximating Latvian dictionary order, case-insensitive first."""
    lowered = value.lower()
    primary = []
    secondary = []
    for ch in lowered:
        base = _SECONDARY_ONLY.get(ch, ch)
        rank = _PRIMARY_RANK.get(base)
        # Characters outside the alphabet (digits, spaces, other letters)
        # sort by code point before/after letters as usual.
        primary.append((1, rank, "") if rank is not None else (0 if ch < "a" else 2, 0, ch))
        secondary.append(1 if ch in _SECONDARY_ONLY else 0)
    return (tuple(primary), tuple(secondary), value)


@dataclass(frozen=True)
class IndexStats:
    total_people: int
    people_with_content: int
    people_with_images: int
    total_images: int
    total_words: int
    average_words_per_person: int
    average_images_per_person: int
    average_content_length: int


class SubjectIndex:
    """Keyed, read-only collection of ``SubjectRecord`` objects."""

    def __init__(self, records: Iterable[SubjectRecord] = ()) -> None:
        by_slug: dict[str, SubjectRecord] = {}
        for record in records:
            if record.slug in by_slug:
                raise ValueError(f"Duplicate slug in index: {record.slug!r}")
            by_slug[record.slug] = record
        self._by_slug = MappingProxyType(by_slug)

    def __len__(self) -> int:
        return len(self._by_slug)

    def __contains__(self, slug: object) -> bool:
        return slug in self._by_slug

    def __iter__(self) -> Iterator[SubjectRecord]:
        return iter(self._by_slug.values())

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def all(self) -> list[SubjectRecord]:
        return list(self._by_slug.values())

    def get(self, slug: str) -> SubjectRecord | None:
        return self._by_slug.get(slug) if slug else None

    def exists(self, slug: str) -> bool:
        return slug in self._by_slug

    def count(self) -> int:
        return len(self._by_slug)

    def slugs(self) -> list[str]:
        return list(self._by_slug)

    def get_many(self, slugs: Iterable[str]) -> list[SubjectRecord]:
        """Records for *slugs* in the given order; unknown slugs are dropped."""
        return [self._by_slug[s] for s in slugs if s in self._by_slug]

    def main_image(self, slug: str) -> ImageDescriptor | None:
        record = self.get(slug)
        return record.main_image if record else None

    def content_preview(self, slug: str, length: int = PREVIEW_LENGTH) -> str:
        record = self.get(slug)
        if record is None:
            return ""
        return content_preview(record.content.text, length)

    # ------------------------------------------------------------------
    # Filters and search
    # ------------------------------------------------------------------

    def with_content(self) -> list[SubjectRecord]:
        """Subjects whose text is longer than the minimum subject length."""
        return [r for r in self if len(r.content.text) > MIN_SUBJECT_TEXT_LENGTH]

    def with_images(self) -> list[SubjectRecord]:
        return [r for r in self if r.images]

    def search_by_name(self, query: str) -> list[SubjectRecord]:
        term = query.strip().lower() if query else ""
        if not term:
            return []
        return [r for r in self if term in r.name.lower()]

    def search_by_content(self, query: str) -> list[SubjectRecord]:
        term = query.strip().lower() if query else ""
        if not term:
            return []
        return [r for r in self if term in r.content.text.lower()]

    def search(self, query: str) -> list[SubjectRecord]:
        """Name or content matches, in index order."""
        term = query.strip().lower() if query else ""
        if not term:
            return []
        return [
            r for r in self if term in r.name.lower() or term in r.content.text.lower()
        ]

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def sorted_by_name(self, ascending: bool = True) -> list[SubjectRecord]:
        return sorted(self, key=lambda r: latvian_sort_key(r.name), reverse=not ascending)

    def sorted_by_word_count(self, ascending: bool = False) -> list[SubjectRecord]:
        return sorted(self, key=lambda r: r.metadata.word_count, reverse=not ascending)

    def sorted_by_image_count(self, ascending: bool = False) -> list[SubjectRecord]:
        return sorted(self, key=lambda r: len(r.images), reverse=not ascending)

    def random(self, count: int = 1, rng: _random.Random | None = None) -> list[SubjectRecord]:
        """Up to *count* distinct subjects chosen at random."""
        records = self.all()
        if count >= len(records):
            return records
        if count <= 0:
            return []
        return (rng or _random).sample(records, count)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def stats(self) -> IndexStats:
        records = self.all()
        total = len(records)
        total_images = sum(len(r.images) for r in records)
        total_words = sum(r.metadata.word_count for r in records)
        total_length = sum(len(r.content.text) for r in records)
        return IndexStats(
            total_people=total,
            people_with_content=len(self.with_content()),
            people_with_images=len(self.with_images()),
            total_images=total_images,
            total_words=total_words,
            average_words_per_person=round(total_words / total) if total else 0,
            average_images_per_person=round(total_images / total) if total else 0,
            average_content_length=round(total_length / total) if total else 0,
        )
