"""Structured logging for pipeline runs."""

from contentgen.logging.structured import (
    configure_structlog,
    get_logger,
    bind_context,
    clear_context,
    with_context,
)

__all__ = [
    "configure_structlog",
    "get_logger",
    "bind_context",
    "clear_context",
    "with_context",
]
