"""Named rule tables used by the markup extractor.

Two ordered tables drive the content heuristics:

- ``CREDIT_RULES``: a paragraph is a photo credit if any rule matches.
- ``HEADING_RULES``: each rule promotes matching paragraphs to a heading of
  the given level; ``once`` rules stop after their first promotion.

Both tables are plain data so they can be tested alone and swapped by passing
a different table to ``extract_content``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

Predicate = Callable[[str], bool]


@dataclass(frozen=True)
class CreditRule:
    name: str
    matches: Predicate


@dataclass(frozen=True)
class HeadingRule:
    name: str
    matches: Predicate
    level: int
    once: bool = True


def _pattern(regex: str) -> Predicate:
    compiled = re.compile(regex, re.IGNORECASE)
    return lambda text: compiled.search(text) is not None


# ---------------------------------------------------------------------------
# Photo credits
# ---------------------------------------------------------------------------

SHORT_CREDIT_MAX_LENGTH = 100
_SHORT_CREDIT_MARKERS = ("foto", "attēls", "arhīv")


def _short_credit_line(text: str) -> bool:
    lowered = text.lower()
    return len(text) < SHORT_CREDIT_MAX_LENGTH and any(
        marker in lowered for marker in _SHORT_CREDIT_MARKERS
    )


CREDIT_RULES: list[CreditRule] = [
    CreditRule("foto-colon", _pattern(r"^foto\s*:")),
    CreditRule("foto-no", _pattern(r"^foto\s+no\s+")),
    CreditRule("attels-colon", _pattern(r"^attēls\s*:")),
    CreditRule("fotografija-colon", _pattern(r"^fotogrāfija\s*:")),
    CreditRule("privata-arhiva", _pattern(r"privātā\s+arhīva")),
    CreditRule("personiga-arhiva", _pattern(r"personīgā\s+arhīva")),
    CreditRule("autora-arhivs", _pattern(r"^autora\s+arhīvs")),
    CreditRule("no-personiga", _pattern(r"^no\s+personīgā")),
    CreditRule("short-credit-line", _short_credit_line),
]


def is_photo_credit(text: str, rules: list[CreditRule] | None = None) -> bool:
    """Return True if *text* (a stripped paragraph) reads as a photo credit."""
    table = CREDIT_RULES if rules is None else rules
    return any(rule.matches(text) for rule in table)


# ---------------------------------------------------------------------------
# Heading promotion
# ---------------------------------------------------------------------------

INTRO_QUESTION = "Kā sasniegt savu sapni un gūt panākumus?"
_SECTION_NUMBER_RE = re.compile(r"^\d+\.\s*$")

HEADING_RULES: list[HeadingRule] = [
    HeadingRule("intro-question", lambda text: INTRO_QUESTION in text, level=2),
    HeadingRule(
        "intro-subtitle",
        lambda text: text.lower().startswith("stāsta") and len(text) < 200,
        level=3,
    ),
    HeadingRule(
        "section-number",
        lambda text: _SECTION_NUMBER_RE.match(text) is not None and len(text) < 10,
        level=4,
        once=False,
    ),
]
