"""Tests for the photo-credit and heading rule tables."""

from __future__ import annotations

import pytest

from personae.ingest.rules import (
    CREDIT_RULES,
    HEADING_RULES,
    INTRO_QUESTION,
    CreditRule,
    is_photo_credit,
)


@pytest.mark.parametrize(
    "text",
    [
        "Foto: Jānis Ozols",
        "FOTO : arhīvs",
        "Foto no ģimenes albuma",
        "Attēls: muzeja krājums",
        "Fotogrāfija: LETA",
        "No privātā arhīva",
        "Attēli no personīgā arhīva",
        "Autora arhīvs",
        "No personīgā albuma",
        "Kolēģa foto, 1998",
    ],
)
def test_credit_rules_match(text):
    assert is_photo_credit(text)


@pytest.mark.parametrize(
    "text",
    [
        "Jānis dzimis Rīgā 1950. gadā.",
        "Viņš strādāja par inženieri rūpnīcā VEF.",
        # Long paragraphs mentioning photos are body text.
        "Viņa visu dzīvi aizrāvās ar fotogrāfiju un ceļošanu, apmeklējot vairāk nekā "
        "trīsdesmit valstis un iemūžinot to dabu savos albumos.",
    ],
)
def test_credit_rules_reject_body_text(text):
    assert not is_photo_credit(text)


def test_short_credit_line_limit_is_exclusive():
    text = "arhīvs " + "x" * 93
    assert len(text) == 100
    assert not is_photo_credit(text)
    assert is_photo_credit(text[:-1])


def test_rules_are_named_and_swappable():
    names = [rule.name for rule in CREDIT_RULES]
    assert len(names) == len(set(names))
    only_marker = [CreditRule("marker", lambda text: text == "@credit")]
    assert is_photo_credit("@credit", only_marker)
    assert not is_photo_credit("Foto: Jānis Ozols", only_marker)


def _heading(name):
    return next(rule for rule in HEADING_RULES if rule.name == name)


def test_intro_question_rule():
    rule = _heading("intro-question")
    assert rule.level == 2
    assert rule.once
    assert rule.matches(f"Jautājums: {INTRO_QUESTION}")
    assert not rule.matches("Kā sasniegt savu sapni?")


def test_intro_subtitle_rule():
    rule = _heading("intro-subtitle")
    assert rule.level == 3
    assert rule.matches("Stāsta Anna Ozola, skolotāja")
    assert not rule.matches("Anna stāsta par sevi")
    assert not rule.matches("Stāsta " + "x" * 200)


def test_section_number_rule():
    rule = _heading("section-number")
    assert rule.level == 4
    assert not rule.once
    assert rule.matches("1.")
    assert rule.matches("12. ")
    assert not rule.matches("1. nodaļa")
    assert not rule.matches("1")
