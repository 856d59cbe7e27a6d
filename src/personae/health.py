"""Health assessment and degradation shaping.

Both functions here are pure: ``assess`` maps index contents plus the
initialization flag to a ``HealthReport``; ``degradation_response`` maps a
report plus a caller context to the value a presentation layer renders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from personae.index import SubjectIndex

DEFAULT_MAX_MISSING_IMAGES_RATIO = 0.20
DEFAULT_MAX_INSUFFICIENT_CONTENT_RATIO = 0.10
API_RETRY_AFTER_SECONDS = 300


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


class CallerContext(str, Enum):
    GENERAL = "general"
    ROUTE = "route"
    ADMIN = "admin"
    API = "api"


@dataclass(frozen=True)
class HealthReport:
    status: HealthStatus
    issues: tuple[str, ...]
    initialized: bool
    data_loaded: bool
    counts: dict[str, int] = field(default_factory=dict)
    last_checked: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def assess(
    index: SubjectIndex,
    initialized: bool,
    *,
    max_missing_images_ratio: float = DEFAULT_MAX_MISSING_IMAGES_RATIO,
    max_insufficient_content_ratio: float = DEFAULT_MAX_INSUFFICIENT_CONTENT_RATIO,
    last_error: str | None = None,
) -> HealthReport:
    """Compute the current health of a subject index.

    - ``failed``: never successfully initialized.
    - ``degraded``: empty index, or too many subjects without images or
      with insufficient content.
    - ``healthy`` otherwise.
    """
    stats = index.stats()
    people = stats.total_people
    counts = {
        "people": people,
        "with_images": stats.people_with_images,
        "with_content": stats.people_with_content,
        "average_content_length": stats.average_content_length,
    }
    issues: list[str] = []

    if not initialized:
        issues.append("Service not initialized")
        if last_error:
            issues.append(last_error)
        return HealthReport(HealthStatus.FAILED, tuple(issues), False, people > 0, counts)

    if people == 0:
        issues.append("No data loaded: the people index is empty")
        return HealthReport(HealthStatus.DEGRADED, tuple(issues), True, False, counts)

    status = HealthStatus.HEALTHY
    if stats.people_with_images < people * (1 - max_missing_images_ratio):
        status = HealthStatus.DEGRADED
        issues.append(f"{people - stats.people_with_images} people missing images")
    if stats.people_with_content < people * (1 - max_insufficient_content_ratio):
        status = HealthStatus.DEGRADED
        issues.append(f"{people - stats.people_with_content} people with insufficient content")

    return HealthReport(status, tuple(issues), True, True, counts)


# ---------------------------------------------------------------------------
# Degradation shaping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DegradationResponse:
    available: bool
    reason: str
    message: str
    context: CallerContext
    user_message: str = ""
    technical_details: str = ""
    recovery_suggestions: tuple[str, ...] = ()
    retry_after: int | None = None
    fallback_endpoints: tuple[str, ...] = ()


_ADMIN_SUGGESTIONS = (
    "Check server logs for detailed error information",
    "Verify people directory structure and permissions",
    "Run 'personae recover' to retry initialization",
    "Check if people HTML files are valid and accessible",
)
_API_FALLBACK_ENDPOINTS = ("/api/health/people", "/api/status")


def degradation_response(
    report: HealthReport, context: CallerContext | str = CallerContext.GENERAL
) -> DegradationResponse:
    """Shape *report* for a caller; admin and api contexts get extra hints."""
    context = CallerContext(context)

    if not report.initialized:
        available, reason = False, "service_not_initialized"
        message = "The people data service failed to initialize"
        technical = "Service initialization failed: " + "; ".join(report.issues)
        user_message = "This section is currently unavailable. Please try again later."
    elif not report.data_loaded:
        available, reason = False, "no_data_available"
        message = "No people profiles are currently available"
        technical = "Service initialized but no valid people data was loaded"
        user_message = "No profiles are currently available in this section."
    elif report.status is HealthStatus.DEGRADED:
        available, reason = True, "degraded_service"
        message = "Service is running with limited functionality"
        technical = "Issues: " + ", ".join(report.issues)
        user_message = "Some content may be unavailable or incomplete."
    else:
        available, reason = True, "healthy"
        message = "Service is running normally"
        technical = ""
        user_message = ""

    suggestions: tuple[str, ...] = ()
    retry_after = None
    fallbacks: tuple[str, ...] = ()
    if context is CallerContext.ADMIN:
        suggestions = _ADMIN_SUGGESTIONS
    elif context is CallerContext.API:
        retry_after = API_RETRY_AFTER_SECONDS
        fallbacks = _API_FALLBACK_ENDPOINTS

    return DegradationResponse(
        available=available,
        reason=reason,
        message=message,
        context=context,
        user_message=user_message,
        technical_details=technical,
        recovery_suggestions=suggestions,
        retry_after=retry_after,
        fallback_endpoints=fallbacks,
    )
