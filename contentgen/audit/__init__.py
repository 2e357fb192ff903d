"""Audit trail of provider round-trips."""

from contentgen.audit.response_log import ResponseLogService

__all__ = ["ResponseLogService"]
