"""Exception classes for the content generation core.

All custom exceptions inherit from ContentGenError and include:
- message: Human-readable error message
- error_kind: Machine-readable kind (e.g., "not_found"), surfaced in RunResult
- details: Optional dictionary with additional context
"""

from typing import Any, Optional


class ContentGenError(Exception):
    """Base exception for all content generation errors."""

    error_kind: str = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON payloads."""
        result = {
            "kind": self.error_kind,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ProviderError(ContentGenError):
    """A remote LLM or image provider call failed.

    Covers network errors, quota exhaustion, safety blocks and timeouts.
    Adapters never retry; `retryable` tells the caller whether re-invoking
    the run could succeed.
    """

    error_kind = "provider_error"

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        provider: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.retryable = retryable
        self.provider = provider


class ProviderTimeout(ProviderError):
    """Provider call exceeded its wall-clock deadline."""

    error_kind = "provider_timeout"

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message, retryable=True, provider=provider)


class InvalidTemplate(ContentGenError):
    """Template failed validation and cannot be saved."""

    error_kind = "invalid_template"


class WorkflowCycle(ContentGenError):
    """Inter-step output references cannot be satisfied by the planned order."""

    error_kind = "workflow_cycle"


class AccessDenied(ContentGenError):
    """Missing or mismatched account context for the requested row."""

    error_kind = "access_denied"


class NotFound(ContentGenError):
    """Requested row does not exist."""

    error_kind = "not_found"


class ConflictingCategory(ContentGenError):
    """An active template already exists for this account and category."""

    error_kind = "conflicting_category"


class InvalidStatusTransition(ContentGenError):
    """Generated article status change is not allowed."""

    error_kind = "invalid_status_transition"


class LogWriteError(ContentGenError):
    """Writing an AI response log row failed. Never propagated past ResponseLogService."""

    error_kind = "log_write_error"
