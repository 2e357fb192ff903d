"""Structured logging with structlog.

Run-scoped fields (account_id, run_id, wave) live in structlog's
contextvars store, so concurrent runs on the same event loop each carry
their own context into every event they emit.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "contentgen"


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict["service"] = SERVICE_NAME
    return event_dict


def build_processors(json_format: bool) -> list[Processor]:
    """Processor chain shared by the JSON and console renderers."""
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_info,
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_structlog(json_format: bool = True, log_level: str = "INFO") -> None:
    """Route structlog through stdlib logging at the given level.

    Call once from the process entry point; JSON output is meant for
    production, the console renderer for local runs.
    """
    level = logging.getLevelName(log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=build_processors(json_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def _stringify(fields: dict[str, Any]) -> dict[str, str]:
    # Empty values are dropped so callers can pass optional ids unchecked.
    return {
        key: value if isinstance(value, str) else str(value)
        for key, value in fields.items()
        if value is not None and value != ""
    }


def bind_context(**fields: Any) -> None:
    """Attach fields to every later event from the current task.

    Example:
        bind_context(account_id=account_id, run_id=str(blog_id))
    """
    values = _stringify(fields)
    if values:
        structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def with_context(**fields: Any) -> dict[str, str]:
    """Bind fields and return them so the caller can unbind afterwards.

    Example:
        bound = with_context(operation="batch_run", wave=2)
        try:
            ...
        finally:
            structlog.contextvars.unbind_contextvars(*bound)
    """
    bound = _stringify(fields)
    if bound:
        structlog.contextvars.bind_contextvars(**bound)
    return bound


configure_structlog(json_format=False, log_level="INFO")
