"""Image collector and photo-credit association for one subject directory."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from personae.ingest.slug import alt_text
from personae.models import MIN_IMAGE_BYTES, ImageDescriptor, PhotoCredit

logger = logging.getLogger(__name__)

IMAGES_DIRNAME = "images"
DEFAULT_URL_PREFIX = "/media/people"

_IMAGE_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)


def is_image_file(filename: str) -> bool:
    """Raster extension check that rejects Zone.Identifier and AppleDouble sidecars."""
    if "Zone.Identifier" in filename or filename.startswith("._"):
        return False
    return _IMAGE_RE.search(filename) is not None


def web_path(dir_name: str, filename: str, url_prefix: str = DEFAULT_URL_PREFIX) -> str:
    return f"{url_prefix.rstrip('/')}/{dir_name}/{IMAGES_DIRNAME}/{filename}"


def collect_images(
    subject_dir: Path, url_prefix: str = DEFAULT_URL_PREFIX
) -> list[ImageDescriptor]:
    """Build ordered descriptors for the valid images under ``<subject_dir>/images``.

    Files under MIN_IMAGE_BYTES or that cannot be stat'ed are dropped; ``order``
    counts only surviving files. A missing images directory yields [].
    """
    dir_name = subject_dir.name
    images_dir = subject_dir / IMAGES_DIRNAME
    if not images_dir.is_dir():
        logger.warning("No images directory found for %s: %s", dir_name, images_dir)
        return []

    try:
        filenames = sorted(entry.name for entry in images_dir.iterdir() if entry.is_file())
    except OSError as exc:
        logger.warning("Error reading images directory for %s: %s", dir_name, exc)
        return []

    candidates = [name for name in filenames if is_image_file(name)]
    if not candidates:
        logger.warning("No image files found in images directory for %s", dir_name)
        return []

    images: list[ImageDescriptor] = []
    for filename in candidates:
        full_path = images_dir / filename
        try:
            stat = full_path.stat()
        except OSError as exc:
            logger.warning("Failed to process image %s for %s: %s", filename, dir_name, exc)
            continue

        if stat.st_size < MIN_IMAGE_BYTES:
            logger.warning(
                "Skipping very small image file for %s: %s (%d bytes)",
                dir_name,
                filename,
                stat.st_size,
            )
            continue

        images.append(
            ImageDescriptor(
                filename=filename,
                path=web_path(dir_name, filename, url_prefix),
                full_path=full_path,
                alt=alt_text(dir_name, filename),
                size=stat.st_size,
                last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                order=len(images),
            )
        )

    logger.debug("Found %d valid images for %s", len(images), dir_name)
    return images


def associate_credits(
    images: list[ImageDescriptor], credits: list[PhotoCredit] | tuple[PhotoCredit, ...]
) -> list[ImageDescriptor]:
    """Attach credit text to images by position.

    Image ``i`` gets ``credits[i]``; when there is exactly one credit and
    several images, every image without a positional match gets that credit.
    This assumes credits appear in the same order as the image files, which
    nothing verifies.
    """
    if not credits:
        return list(images)

    result: list[ImageDescriptor] = []
    for index, image in enumerate(images):
        if index < len(credits):
            result.append(image.with_credit(credits[index].text))
        elif len(credits) == 1 and len(images) > 1:
            result.append(image.with_credit(credits[0].text))
        else:
            result.append(image)
    return result
