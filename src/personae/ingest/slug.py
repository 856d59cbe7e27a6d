"""Slug and display-name derivation for subject directories.

``slugify`` is total: any string maps to a (possibly empty) lowercase ASCII
slug. Empty slugs are rejected later by ``models.validate_slug``.
"""

from __future__ import annotations

import re

# Base letter → diacritic variants. Covers the Latvian alphabet plus the
# neighbouring Baltic/Central European letters seen in directory names.
_DIACRITIC_GROUPS: dict[str, str] = {
    "a": "āăą",
    "e": "ēĕę",
    "i": "īĭį",
    "o": "ōŏő",
    "u": "ūŭų",
    "c": "ćčç",
    "g": "ģğ",
    "k": "ķ",
    "l": "ļľ",
    "n": "ńňņ",
    "r": "ŕř",
    "s": "śšş",
    "t": "ţť",
    "z": "žź",
}

_TRANSLITERATION: dict[int, str] = {
    ord(variant): base
    for base, variants in _DIACRITIC_GROUPS.items()
    for variant in variants
}

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Derive a URL-safe slug from a subject name.

    >>> slugify("Elīna Brasliņa")
    'elina-braslina'
    """
    lowered = name.lower().translate(_TRANSLITERATION)
    return _NON_SLUG_RE.sub("-", lowered).strip("-")


def clean_name(name: str) -> str:
    """Title-case each space-separated word (``ANNIJA KOPŠTĀLE`` → ``Annija Kopštāle``)."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split(" "))


def alt_text(name: str, filename: str) -> str:
    """Alt text for an image: cleaned subject name plus the filename stem."""
    stem = re.sub(r"\.[^/.]+$", "", filename)
    return f"{clean_name(name)} - {stem}"
