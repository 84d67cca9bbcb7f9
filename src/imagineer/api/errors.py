"""Translation of domain exceptions into JSON error responses.

Every error leaves the API as ``{"code", "message", "details"}``. The
status code is chosen from the exception's class; the first matching
entry in ``ERROR_STATUS`` wins, so subclasses are listed before their
parents.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from imagineer.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ImagineerError,
    LLMConfigurationError,
    NotFoundError,
    QuotaExceededError,
    StaleOffsetError,
    UnsupportedSourceError,
    ValidationError,
)
from imagineer.core.logging import get_logger

logger = get_logger(__name__)

ERROR_STATUS: tuple[tuple[type[ImagineerError], int, str], ...] = (
    (QuotaExceededError, status.HTTP_402_PAYMENT_REQUIRED, "quota_exceeded"),
    (LLMConfigurationError, status.HTTP_400_BAD_REQUEST, "llm_not_configured"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (ConflictError, status.HTTP_409_CONFLICT, "conflict"),
    (StaleOffsetError, status.HTTP_409_CONFLICT, "stale_offset"),
    (UnsupportedSourceError, status.HTTP_400_BAD_REQUEST, "unsupported_source"),
    (ValidationError, status.HTTP_400_BAD_REQUEST, "validation_error"),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED, "unauthorized"),
    # Another user's data is reported as missing.
    (AuthorizationError, status.HTTP_404_NOT_FOUND, "not_found"),
)


def status_for(exc: ImagineerError) -> tuple[int, str]:
    """HTTP status and error code for a domain exception."""
    for exc_type, status_code, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the JSON body shared by every error."""
    return JSONResponse(
        status_code=status_code,
        content={"code": code, "message": message, "details": jsonable_encoder(details or {})},
    )


# =============================================================================
# Handlers
# =============================================================================


async def handle_domain_error(request: Request, exc: ImagineerError) -> JSONResponse:
    status_code, code = status_for(exc)
    if status_code >= 500:
        logger.error("Request failed", error=str(exc), error_type=type(exc).__name__)
    else:
        logger.info("Request rejected", status=status_code, code=code, error=exc.message)
    return error_response(status_code, code, exc.message, exc.details)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "validation_error",
        message,
        {"errors": errors},
    )


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, "http_error", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", error_type=type(exc).__name__)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "Internal server error",
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the exception handlers on an application."""
    app.add_exception_handler(ImagineerError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected)


__all__ = [
    "ERROR_STATUS",
    "status_for",
    "error_response",
    "register_error_handlers",
]
