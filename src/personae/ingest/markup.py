"""Markup extractor — one subject's HTML document → ``SubjectContent``.

Pipeline (order matters):
  1. drop <style>/<script>
  2. pull photo-credit paragraphs out of the document (``CREDIT_RULES``)
  3. promote recurring intro paragraphs to headings (``HEADING_RULES``)
  4. strip every attribute except src / alt / href / title
  5. serialize body markup and collapse body text

Parsing goes through the small ``MarkupDocument`` interface; ``SoupDocument``
is the beautifulsoup4 implementation used by default.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Protocol

from bs4 import BeautifulSoup, Tag

from personae.ingest.rules import (
    CREDIT_RULES,
    HEADING_RULES,
    CreditRule,
    HeadingRule,
    is_photo_credit,
)
from personae.models import PhotoCredit, SubjectContent, count_words

logger = logging.getLogger(__name__)

ALLOWED_ATTRIBUTES: frozenset[str] = frozenset({"src", "alt", "href", "title"})
_WHITESPACE_RE = re.compile(r"\s+")


class MarkupDocument(Protocol):
    """Minimal DOM surface the extractor needs."""

    def remove_elements(self, *names: str) -> None: ...

    def paragraphs(self) -> list[Any]: ...

    def text_of(self, node: Any) -> str: ...

    def remove(self, node: Any) -> None: ...

    def replace_with_heading(self, node: Any, level: int, text: str) -> None: ...

    def strip_attributes(self, allowed: frozenset[str]) -> None: ...

    def body_html(self) -> str: ...

    def body_text(self) -> str: ...


class SoupDocument:
    """``MarkupDocument`` backed by BeautifulSoup with the stdlib html.parser."""

    def __init__(self, html: str) -> None:
        self._soup = BeautifulSoup(html, "html.parser")

    @property
    def _root(self) -> Tag:
        return self._soup.body if self._soup.body is not None else self._soup

    def remove_elements(self, *names: str) -> None:
        for tag in self._soup.find_all(list(names)):
            tag.decompose()

    def paragraphs(self) -> list[Tag]:
        return [p for p in self._soup.find_all("p") if not p.decomposed]

    def text_of(self, node: Tag) -> str:
        return node.get_text().strip()

    def remove(self, node: Tag) -> None:
        node.decompose()

    def replace_with_heading(self, node: Tag, level: int, text: str) -> None:
        heading = self._soup.new_tag(f"h{level}")
        heading.string = text
        node.replace_with(heading)

    def strip_attributes(self, allowed: frozenset[str]) -> None:
        for tag in self._root.find_all(True):
            tag.attrs = {k: v for k, v in tag.attrs.items() if k in allowed}

    def body_html(self) -> str:
        return "".join(str(child) for child in self._root.contents).strip()

    def body_text(self) -> str:
        return _WHITESPACE_RE.sub(" ", self._root.get_text()).strip()


ParserFactory = Callable[[str], MarkupDocument]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_content(
    html: str,
    subject_name: str = "",
    *,
    credit_rules: list[CreditRule] | None = None,
    heading_rules: list[HeadingRule] | None = None,
    parser: ParserFactory = SoupDocument,
) -> SubjectContent | None:
    """Parse *html* into cleaned markup, plain text and photo credits.

    Args:
        html: Raw document text.
        subject_name: Used only as logging context.
        credit_rules: Override ``CREDIT_RULES``.
        heading_rules: Override ``HEADING_RULES``.
        parser: Factory producing a ``MarkupDocument``.

    Returns:
        ``SubjectContent``, or None when the document is empty.
    """
    if not html or not html.strip():
        logger.warning("Empty HTML document for %s", subject_name)
        return None

    doc = parser(html)
    doc.remove_elements("style", "script")

    credits = _extract_photo_credits(doc, credit_rules, subject_name)
    _promote_headings(doc, HEADING_RULES if heading_rules is None else heading_rules, subject_name)
    doc.strip_attributes(ALLOWED_ATTRIBUTES)

    text = doc.body_text()
    return SubjectContent(
        html=doc.body_html(),
        text=text,
        photo_credits=tuple(credits),
        word_count=count_words(text),
    )


def _extract_photo_credits(
    doc: MarkupDocument, rules: list[CreditRule] | None, subject_name: str
) -> list[PhotoCredit]:
    credits: list[PhotoCredit] = []
    for node in doc.paragraphs():
        text = doc.text_of(node)
        if is_photo_credit(text, rules):
            credits.append(PhotoCredit(text=text, order=len(credits)))
            doc.remove(node)
            logger.debug("Extracted photo credit for %s: %r", subject_name, text)
    return credits


def _promote_headings(doc: MarkupDocument, rules: list[HeadingRule], subject_name: str) -> None:
    for rule in rules:
        for node in doc.paragraphs():
            text = doc.text_of(node)
            if not rule.matches(text):
                continue
            doc.replace_with_heading(node, rule.level, text)
            logger.debug("Promoted %s to h%d for %s: %r", rule.name, rule.level, subject_name, text)
            if rule.once:
                break


# ---------------------------------------------------------------------------
# Document discovery
# ---------------------------------------------------------------------------


def find_document(subject_dir: Path) -> Path | None:
    """Return the first ``.html`` file in *subject_dir* (sorted), or None."""
    candidates = sorted(
        entry
        for entry in subject_dir.iterdir()
        if entry.name.endswith(".html")
        and "Zone.Identifier" not in entry.name
        and entry.is_file()
    )
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.warning(
            "Multiple HTML files in %s, using first: %s", subject_dir, candidates[0].name
        )
    return candidates[0]


def load_document(subject_dir: Path, subject_name: str = "") -> str | None:
    """Read the subject's HTML document; None if absent, unreadable or empty."""
    path = find_document(subject_dir)
    if path is None:
        logger.warning("No HTML file found for %s in %s", subject_name, subject_dir)
        return None
    try:
        html = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.error("HTML file not readable for %s: %s (%s)", subject_name, path, exc)
        return None
    if not html.strip():
        logger.warning("Empty HTML file for %s: %s", subject_name, path)
        return None
    logger.debug("Read %s for %s (%d characters)", path.name, subject_name, len(html))
    return html
