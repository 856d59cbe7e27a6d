"""Tests for image collection and photo-credit association."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from personae.errors import ValidationError
from personae.ingest.images import (
    associate_credits,
    collect_images,
    is_image_file,
    web_path,
)
from personae.models import ImageDescriptor, PhotoCredit


def _subject(tmp_path: Path, files: dict[str, int], name: str = "ANNA OZOLA") -> Path:
    subject_dir = tmp_path / name
    images_dir = subject_dir / "images"
    images_dir.mkdir(parents=True)
    for filename, size in files.items():
        (images_dir / filename).write_bytes(b"\xff" * size)
    return subject_dir


def _image(order: int, filename: str | None = None) -> ImageDescriptor:
    filename = filename or f"{order}.jpg"
    return ImageDescriptor(
        filename=filename,
        path=f"/media/people/x/images/{filename}",
        full_path=Path(filename),
        alt="X",
        size=2048,
        last_modified=datetime.now(timezone.utc),
        order=order,
    )


def _credits(*texts: str) -> list[PhotoCredit]:
    return [PhotoCredit(text=t, order=i) for i, t in enumerate(texts)]


# ------------------------------------------------------------------
# File filtering
# ------------------------------------------------------------------

@pytest.mark.parametrize("name", ["a.jpg", "a.JPEG", "a.png", "a.gif", "a.webp"])
def test_is_image_file_accepts_raster(name):
    assert is_image_file(name)


@pytest.mark.parametrize(
    "name", ["a.svg", "a.txt", "a.jpg:Zone.Identifier", "._a.jpg", "jpg"]
)
def test_is_image_file_rejects(name):
    assert not is_image_file(name)


def test_web_path():
    assert web_path("ANNA OZOLA", "1.jpg") == "/media/people/ANNA OZOLA/images/1.jpg"
    assert web_path("x", "1.jpg", "/static/") == "/static/x/images/1.jpg"


# ------------------------------------------------------------------
# collect_images
# ------------------------------------------------------------------

def test_collect_images_sorted_with_descriptors(tmp_path):
    subject_dir = _subject(tmp_path, {"b.jpg": 2048, "a.png": 4096})
    images = collect_images(subject_dir)
    assert [i.filename for i in images] == ["a.png", "b.jpg"]
    assert [i.order for i in images] == [0, 1]
    first = images[0]
    assert first.path == "/media/people/ANNA OZOLA/images/a.png"
    assert first.alt == "Anna Ozola - a"
    assert first.size == 4096
    assert first.full_path == subject_dir / "images" / "a.png"
    assert first.credit is None


def test_collect_images_drops_small_and_non_images(tmp_path):
    subject_dir = _subject(
        tmp_path,
        {"a.jpg": 1023, "b.jpg": 1024, "c.txt": 5000, "._d.jpg": 5000},
    )
    images = collect_images(subject_dir)
    assert [i.filename for i in images] == ["b.jpg"]
    assert images[0].order == 0


def test_collect_images_missing_directory(tmp_path):
    subject_dir = tmp_path / "ANNA"
    subject_dir.mkdir()
    assert collect_images(subject_dir) == []


def test_collect_images_custom_prefix(tmp_path):
    subject_dir = _subject(tmp_path, {"a.jpg": 2048})
    assert collect_images(subject_dir, "/cdn")[0].path == "/cdn/ANNA OZOLA/images/a.jpg"


def test_image_descriptor_rejects_small_size():
    with pytest.raises(ValidationError):
        ImageDescriptor(
            filename="a.jpg",
            path="/a.jpg",
            full_path=Path("a.jpg"),
            alt="a",
            size=10,
            last_modified=datetime.now(timezone.utc),
            order=0,
        )


# ------------------------------------------------------------------
# associate_credits
# ------------------------------------------------------------------

def test_single_credit_broadcasts_to_all_images():
    images = associate_credits([_image(0), _image(1), _image(2)], _credits("Foto: A"))
    assert [i.credit for i in images] == ["Foto: A", "Foto: A", "Foto: A"]


def test_credits_assigned_by_position():
    images = associate_credits(
        [_image(0), _image(1), _image(2)], _credits("Foto: A", "Foto: B", "Foto: C")
    )
    assert [i.credit for i in images] == ["Foto: A", "Foto: B", "Foto: C"]


def test_no_credits_leaves_images_untouched():
    images = associate_credits([_image(0), _image(1), _image(2)], [])
    assert all(i.credit is None for i in images)


def test_fewer_credits_than_images_leaves_rest_empty():
    images = associate_credits(
        [_image(0), _image(1), _image(2)], _credits("Foto: A", "Foto: B")
    )
    assert [i.credit for i in images] == ["Foto: A", "Foto: B", None]


def test_extra_credits_are_ignored():
    images = associate_credits([_image(0)], _credits("Foto: A", "Foto: B"))
    assert [i.credit for i in images] == ["Foto: A"]
