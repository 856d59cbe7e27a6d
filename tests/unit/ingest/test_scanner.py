"""Tests for the directory scanner."""

from __future__ import annotations

import asyncio

import pytest

from personae.errors import ScanError
from personae.ingest.scanner import DirectoryScanner
from personae.models import SLUG_RE


def test_scan_builds_records(people_root, make_subject):
    make_subject(
        "ANNIJA KOPŠTĀLE",
        body=(
            "<html><body><p>Foto: Jānis Ozols</p>"
            "<p>Annija Kopštāle ir dzimusi Liepājā un strādā par ārsti jau divdesmit gadus.</p>"
            "</body></html>"
        ),
        images={"1.jpg": 2048, "2.jpg": 2048},
    )
    result = DirectoryScanner(people_root).scan()
    record = result.index.get("annija-kopstale")

    assert record is not None
    assert record.name == "Annija Kopštāle"
    assert record.id == "annija-kopstale"
    assert record.content.text.startswith("Annija Kopštāle ir dzimusi")
    assert [i.credit for i in record.images] == ["Foto: Jānis Ozols", "Foto: Jānis Ozols"]
    assert record.main_image.filename == "1.jpg"
    assert record.images[0].path == "/media/people/ANNIJA KOPŠTĀLE/images/1.jpg"
    assert record.metadata.image_count == 2
    assert record.metadata.word_count == record.content.word_count
    assert record.metadata.has_content
    assert record.metadata.content_length == len(record.content.text)


def test_scan_isolates_broken_subject(people_root, make_subject):
    make_subject("Anna Ozola")
    make_subject("Jānis Bērziņš")
    broken = make_subject("Pēteris Kalns")
    (broken / "profile.html").unlink()

    result = DirectoryScanner(people_root).scan()

    assert result.index.count() == 2
    assert "peteris-kalns" not in result.index
    assert result.report.total == 3
    assert result.report.successful == 2
    assert result.report.failed == 1
    assert result.report.failures[0].name == "Pēteris Kalns"
    assert result.report.success_rate == 67


def test_scan_skips_short_content(people_root, make_subject):
    make_subject("Anna Ozola")
    make_subject("Īsais", body="<p>Pārāk īss teksts.</p>")
    result = DirectoryScanner(people_root).scan()
    assert result.index.slugs() == ["anna-ozola"]


def test_scan_records_exceptions_per_subject(people_root, make_subject):
    make_subject("Anna Ozola")
    make_subject("!!!")
    result = DirectoryScanner(people_root).scan()
    assert result.index.slugs() == ["anna-ozola"]
    assert result.report.failed == 1
    assert result.report.failures[0].name == "!!!"


def test_scan_duplicate_slug_keeps_first(people_root, make_subject):
    make_subject("ANNA OZOLA")
    make_subject("Anna Ozola")
    result = DirectoryScanner(people_root).scan()
    assert result.index.count() == 1
    assert result.index.get("anna-ozola").images == ()
    assert "Duplicate slug" in result.report.failures[0].reason
    assert result.report.failures[0].name == "Anna Ozola"


def test_scan_ignores_plain_files_in_root(people_root, make_subject):
    make_subject("Anna Ozola")
    (people_root / "README.txt").write_text("x", encoding="utf-8")
    result = DirectoryScanner(people_root).scan()
    assert result.report.total == 1


def test_scan_missing_root_raises(tmp_path):
    with pytest.raises(ScanError):
        DirectoryScanner(tmp_path / "missing").scan()


def test_scan_empty_root(people_root):
    result = DirectoryScanner(people_root).scan()
    assert result.index.count() == 0
    assert result.report.total == 0
    assert result.report.success_rate == 0


def test_scan_async_matches_sync(people_root, make_subject):
    for name in ["Anna Ozola", "Jānis Bērziņš", "Elīna Brasliņa", "Ģirts Ķēniņš"]:
        make_subject(name, images={"a.jpg": 2048})
    scanner = DirectoryScanner(people_root, max_workers=2)
    sync_result = scanner.scan()
    async_result = asyncio.run(scanner.scan_async())
    assert async_result.index.slugs() == sync_result.index.slugs()
    assert async_result.report.successful == 4


def test_scan_async_missing_root_raises(tmp_path):
    with pytest.raises(ScanError):
        asyncio.run(DirectoryScanner(tmp_path / "missing").scan_async())


def test_every_indexed_record_is_valid(people_root, make_subject):
    make_subject("Anna Ozola")
    make_subject("Jānis (1920–1999)")
    make_subject("Tukšs", body="")
    result = DirectoryScanner(people_root).scan()
    assert result.index.count() == 2
    for record in result.index:
        assert SLUG_RE.match(record.slug)
        assert len(record.content.text) >= 50


def test_max_workers_must_be_positive(people_root):
    with pytest.raises(ValueError):
        DirectoryScanner(people_root, max_workers=0)
