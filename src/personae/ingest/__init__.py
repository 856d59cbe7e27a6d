"""personae ingest pipeline: subject directories → ``SubjectRecord`` objects."""

from personae.ingest.images import associate_credits, collect_images
from personae.ingest.markup import SoupDocument, extract_content
from personae.ingest.rules import CREDIT_RULES, HEADING_RULES, is_photo_credit
from personae.ingest.scanner import DirectoryScanner, ScanReport, ScanResult
from personae.ingest.slug import clean_name, slugify

__all__ = [
    "CREDIT_RULES",
    "HEADING_RULES",
    "DirectoryScanner",
    "ScanReport",
    "ScanResult",
    "SoupDocument",
    "associate_credits",
    "clean_name",
    "collect_images",
    "extract_content",
    "is_photo_credit",
    "slugify",
]
