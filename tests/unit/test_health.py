"""Tests for health assessment and degradation shaping."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from personae.health import (
    CallerContext,
    HealthReport,
    HealthStatus,
    assess,
    degradation_response,
)
from personae.index import SubjectIndex
from personae.models import ImageDescriptor, SubjectContent, SubjectMetadata, SubjectRecord

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
LONG = "x" * 80


def _record(i: int, *, image: bool = True, text: str = LONG) -> SubjectRecord:
    slug = f"person-{i}"
    images = ()
    if image:
        images = (
            ImageDescriptor(
                filename="1.jpg",
                path=f"/media/people/{slug}/images/1.jpg",
                full_path=Path("1.jpg"),
                alt=slug,
                size=2048,
                last_modified=NOW,
                order=0,
            ),
        )
    return SubjectRecord(
        slug=slug,
        name=f"Person {i}",
        content=SubjectContent(html="", text=text, word_count=1),
        images=images,
        metadata=SubjectMetadata(NOW, 1, len(images), True, len(text)),
    )


def _index(n: int = 10, *, without_images: int = 0, short_text: int = 0) -> SubjectIndex:
    records = []
    for i in range(n):
        records.append(
            _record(
                i,
                image=i >= without_images,
                text="y" * 50 if i >= n - short_text else LONG,
            )
        )
    return SubjectIndex(records)


# ------------------------------------------------------------------
# assess
# ------------------------------------------------------------------

def test_healthy_index():
    report = assess(_index(), True)
    assert report.status is HealthStatus.HEALTHY
    assert report.issues == ()
    assert report.initialized
    assert report.data_loaded
    assert report.counts["people"] == 10


def test_missing_images_over_threshold_is_degraded():
    report = assess(_index(without_images=3), True)
    assert report.status is HealthStatus.DEGRADED
    assert "3 people missing images" in report.issues


def test_missing_images_at_threshold_is_healthy():
    assert assess(_index(without_images=2), True).status is HealthStatus.HEALTHY


def test_insufficient_content_over_threshold_is_degraded():
    report = assess(_index(short_text=2), True)
    assert report.status is HealthStatus.DEGRADED
    assert "2 people with insufficient content" in report.issues


def test_insufficient_content_at_threshold_is_healthy():
    assert assess(_index(short_text=1), True).status is HealthStatus.HEALTHY


def test_custom_thresholds():
    report = assess(_index(without_images=3), True, max_missing_images_ratio=0.5)
    assert report.status is HealthStatus.HEALTHY


def test_empty_index_is_degraded_with_no_data():
    report = assess(SubjectIndex(), True)
    assert report.status is HealthStatus.DEGRADED
    assert not report.data_loaded
    assert any("No data" in issue for issue in report.issues)


def test_uninitialized_is_failed():
    report = assess(SubjectIndex(), False, last_error="People directory not accessible: /x")
    assert report.status is HealthStatus.FAILED
    assert not report.initialized
    assert "Service not initialized" in report.issues
    assert "People directory not accessible: /x" in report.issues


# ------------------------------------------------------------------
# degradation_response
# ------------------------------------------------------------------

def _report(status, initialized=True, data_loaded=True, issues=()):
    return HealthReport(status, tuple(issues), initialized, data_loaded)


def test_degradation_failed_service():
    response = degradation_response(_report(HealthStatus.FAILED, initialized=False))
    assert not response.available
    assert response.reason == "service_not_initialized"
    assert response.context is CallerContext.GENERAL
    assert response.recovery_suggestions == ()
    assert response.retry_after is None


def test_degradation_no_data():
    response = degradation_response(_report(HealthStatus.DEGRADED, data_loaded=False), "route")
    assert not response.available
    assert response.reason == "no_data_available"
    assert response.context is CallerContext.ROUTE


def test_degradation_degraded_service_lists_issues():
    response = degradation_response(
        _report(HealthStatus.DEGRADED, issues=["3 people missing images"])
    )
    assert response.available
    assert response.reason == "degraded_service"
    assert "3 people missing images" in response.technical_details


def test_degradation_healthy():
    response = degradation_response(_report(HealthStatus.HEALTHY))
    assert response.available
    assert response.reason == "healthy"


def test_admin_context_gets_suggestions():
    response = degradation_response(_report(HealthStatus.FAILED, initialized=False), "admin")
    assert response.recovery_suggestions
    assert response.retry_after is None


def test_api_context_gets_retry_and_fallbacks():
    response = degradation_response(
        _report(HealthStatus.FAILED, initialized=False), CallerContext.API
    )
    assert response.retry_after == 300
    assert response.fallback_endpoints == ("/api/health/people", "/api/status")
    assert response.recovery_suggestions == ()
