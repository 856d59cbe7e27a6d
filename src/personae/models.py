"""Domain records for the personae core.

Scanned records (``SubjectRecord`` and its parts) are frozen and checked at
construction time; an invalid record can never be built, so consumers do not
re-check fields. ``OverrideRecord`` mirrors one ``people_content`` row.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Literal

from personae.errors import ValidationError

SLUG_RE: re.Pattern[str] = re.compile(r"^[a-z0-9-]+$")
MIN_SLUG_LENGTH = 2
MAX_SLUG_LENGTH = 100
MAX_NAME_LENGTH = 255
MAX_UPDATED_BY_LENGTH = 100

MIN_CONTENT_LENGTH = 10
MAX_CONTENT_LENGTH = 50_000

# Scanned subjects below this many text characters never enter the index.
MIN_SUBJECT_TEXT_LENGTH = 50
# Smaller image files are treated as corrupt placeholders.
MIN_IMAGE_BYTES = 1024

PREVIEW_LENGTH = 150

Source = Literal["database", "file"]


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def validate_slug(slug: object) -> str:
    """Return *slug* unchanged or raise ValidationError(``invalid_slug``)."""
    if not isinstance(slug, str) or not slug:
        raise ValidationError("missing_field", "Person slug is required.")
    if not SLUG_RE.match(slug):
        raise ValidationError(
            "invalid_slug",
            f"Slug '{slug}' may only contain lowercase letters, numbers and hyphens.",
        )
    if not MIN_SLUG_LENGTH <= len(slug) <= MAX_SLUG_LENGTH:
        raise ValidationError(
            "invalid_slug",
            f"Slug must be between {MIN_SLUG_LENGTH} and {MAX_SLUG_LENGTH} characters.",
        )
    return slug


def validate_name(name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("missing_field", "Person name is required.")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            "invalid_name", f"Person name must be {MAX_NAME_LENGTH} characters or less."
        )
    return name


def validate_content(content: object) -> str:
    """Strip *content* and check the 10..50,000 character bounds.

    Returns:
        The stripped content, ready to store.

    Raises:
        ValidationError: ``missing_field``, ``content_too_short`` or
            ``content_too_long``.
    """
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("missing_field", "Content is required.")
    stripped = content.strip()
    if len(stripped) < MIN_CONTENT_LENGTH:
        raise ValidationError(
            "content_too_short",
            f"Content must be at least {MIN_CONTENT_LENGTH} characters long "
            f"(got {len(stripped)}).",
        )
    if len(stripped) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            "content_too_long",
            f"Content must be {MAX_CONTENT_LENGTH:,} characters or less (got {len(stripped):,}).",
        )
    return stripped


def validate_updated_by(updated_by: object) -> str:
    if not isinstance(updated_by, str) or not updated_by.strip():
        raise ValidationError("missing_field", "updated_by is required.")
    if len(updated_by) > MAX_UPDATED_BY_LENGTH:
        raise ValidationError(
            "invalid_updated_by",
            f"updated_by must be {MAX_UPDATED_BY_LENGTH} characters or less.",
        )
    return updated_by


def count_words(text: str) -> int:
    return len(text.split())


def content_preview(text: str, max_length: int = PREVIEW_LENGTH) -> str:
    """Shorten *text* to *max_length*, preferring a word boundary near the end."""
    trimmed = text.strip()
    if len(trimmed) <= max_length:
        return trimmed
    truncated = trimmed[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    return truncated + "..."


# ---------------------------------------------------------------------------
# Scanned (file-source) records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PhotoCredit:
    text: str
    order: int  # position among credit paragraphs, document order


@dataclass(frozen=True)
class ImageDescriptor:
    filename: str
    path: str  # web-relative, e.g. /media/people/<dir>/images/<file>
    full_path: Path
    alt: str
    size: int
    last_modified: datetime
    order: int
    credit: str | None = None

    def __post_init__(self) -> None:
        if self.size < MIN_IMAGE_BYTES:
            raise ValidationError(
                "image_too_small",
                f"Image '{self.filename}' is {self.size} bytes (minimum {MIN_IMAGE_BYTES}).",
            )
        if self.order < 0:
            raise ValidationError("invalid_order", "Image order must be >= 0.")

    def with_credit(self, credit: str) -> ImageDescriptor:
        return replace(self, credit=credit)


@dataclass(frozen=True)
class SubjectContent:
    html: str
    text: str
    photo_credits: tuple[PhotoCredit, ...] = ()
    word_count: int = 0


@dataclass(frozen=True)
class SubjectMetadata:
    last_modified: datetime
    word_count: int
    image_count: int
    has_content: bool
    content_length: int


@dataclass(frozen=True)
class SubjectRecord:
    """One fully built subject, as produced by the directory scanner."""

    slug: str
    name: str
    content: SubjectContent
    images: tuple[ImageDescriptor, ...]
    metadata: SubjectMetadata

    def __post_init__(self) -> None:
        validate_slug(self.slug)
        validate_name(self.name)
        if len(self.content.text) < MIN_SUBJECT_TEXT_LENGTH:
            raise ValidationError(
                "content_too_short",
                f"Subject '{self.name}' has {len(self.content.text)} characters of text "
                f"(minimum {MIN_SUBJECT_TEXT_LENGTH}).",
            )

    @property
    def id(self) -> str:
        return self.slug

    @property
    def main_image(self) -> ImageDescriptor | None:
        return self.images[0] if self.images else None


# ---------------------------------------------------------------------------
# Persisted override
# ---------------------------------------------------------------------------


@dataclass
class OverrideRecord:
    person_slug: str
    person_name: str
    content: str
    updated_by: str = "system"
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None  # set after insert

    def __post_init__(self) -> None:
        validate_slug(self.person_slug)
        validate_name(self.person_name)
        validate_content(self.content)
        validate_updated_by(self.updated_by)

    @property
    def word_count(self) -> int:
        return count_words(self.content)

    @property
    def character_count(self) -> int:
        """Characters excluding whitespace."""
        return len(re.sub(r"\s", "", self.content))

    def preview(self, max_length: int = PREVIEW_LENGTH) -> str:
        return content_preview(self.content, max_length)


# ---------------------------------------------------------------------------
# Read-side projections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProfileContent:
    html: str
    text: str
    word_count: int
    character_count: int
    last_updated: datetime | None
    updated_by: str
    photo_credits: tuple[PhotoCredit, ...] = ()


@dataclass(frozen=True)
class ResolvedProfile:
    """A subject as served to collaborators, combining override and file data.

    ``source`` names the branch that supplied the text; images always come
    from the file source.
    """

    slug: str
    name: str
    content: ProfileContent
    images: tuple[ImageDescriptor, ...]
    metadata: SubjectMetadata | None
    source: Source


@dataclass(frozen=True)
class ProfileSummary:
    slug: str
    name: str
    last_updated: datetime | None
    updated_by: str
    content_preview: str
    word_count: int
    main_image: ImageDescriptor | None
    source: Source


@dataclass(frozen=True)
class MigrationItemError:
    slug: str
    name: str
    reason: str


@dataclass
class MigrationResult:
    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[MigrationItemError] = field(default_factory=list)
