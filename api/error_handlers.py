"""Exception handlers that give every endpoint the same error envelope.

Body shape: {"error": {"code": ..., "message": ..., "details": ...}}.
Unexpected failures are logged with their traceback and reported to the
client as a generic INTERNAL_ERROR.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.exceptions import error_details, status_for
from contentgen.errors import ContentGenError
from contentgen.logging import get_logger

logger = get_logger(__name__)

# Codes for HTTPExceptions raised by routing itself (unknown path, bad method).
HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
}


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the error envelope. Empty details are omitted."""
    body: dict[str, Any] = {"code": code, "message": message}
    if details:
        body["details"] = details
    return {"error": body}


def _error_json(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(code, message, details),
    )


async def contentgen_exception_handler(
    request: Request, exc: ContentGenError
) -> JSONResponse:
    """Translate core errors using the status table in api.exceptions."""
    status_code, code = status_for(exc)
    details = error_details(exc)

    emit = logger.error if status_code >= 500 else logger.warning
    emit(
        "request_failed",
        path=request.url.path,
        status=status_code,
        code=code,
        message=exc.message,
        details=details,
    )
    return _error_json(status_code, code, exc.message, details or None)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report body and path validation failures as 400 VALIDATION_ERROR."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value"),
            "type": err.get("type", "value_error"),
        }
        for err in exc.errors()
    ]
    logger.info("request_invalid", path=request.url.path, error_count=len(errors))
    return _error_json(400, "VALIDATION_ERROR", "Request validation failed", {"errors": errors})


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = HTTP_STATUS_CODES.get(exc.status_code, "ERROR")
    message = str(exc.detail) if exc.detail else "An error occurred"

    emit = logger.error if exc.status_code >= 500 else logger.info
    emit("http_error", path=request.url.path, status=exc.status_code, message=message)
    return _error_json(exc.status_code, code, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )
    return _error_json(500, "INTERNAL_ERROR", "An unexpected error occurred")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ContentGenError, contentgen_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
