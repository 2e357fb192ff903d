"""HTTP mapping for content generation errors.

Core code raises ContentGenError subclasses and knows nothing about HTTP.
The API translates each error kind into a status code and a
machine-readable error code (e.g., "NOT_FOUND").
"""

from typing import Any

from contentgen.errors import (
    AccessDenied,
    ConflictingCategory,
    ContentGenError,
    InvalidStatusTransition,
    InvalidTemplate,
    NotFound,
    ProviderError,
    WorkflowCycle,
)

# Most specific class first; the first isinstance match wins
ERROR_STATUS: list[tuple[type[ContentGenError], int, str]] = [
    (NotFound, 404, "NOT_FOUND"),
    (AccessDenied, 403, "FORBIDDEN"),
    (ConflictingCategory, 409, "CONFLICTING_CATEGORY"),
    (InvalidStatusTransition, 409, "INVALID_STATUS_TRANSITION"),
    (InvalidTemplate, 400, "INVALID_TEMPLATE"),
    (WorkflowCycle, 422, "WORKFLOW_CYCLE"),
    (ProviderError, 502, "PROVIDER_ERROR"),
]


def status_for(exc: ContentGenError) -> tuple[int, str]:
    """Return (status_code, error_code) for a core error."""
    for error_class, status_code, error_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code, error_code
    return 500, "INTERNAL_ERROR"


def error_details(exc: ContentGenError) -> dict[str, Any]:
    details = dict(exc.details)
    if isinstance(exc, ProviderError):
        details["retryable"] = exc.retryable
        if exc.provider:
            details["provider"] = exc.provider
    return details
