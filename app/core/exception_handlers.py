"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain, request validation and unexpected) and return consistent JSON
responses with proper HTTP status codes and traceability.

Design:
- AppError subclasses → the status declared on the class (400-502)
- RateLimitAppError → 429 plus Retry-After / X-RateLimit-* headers
- RequestValidationError → 400 validation_error
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import AppError, RateLimitAppError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str | None:
    """Request id from context, falling back to request state and headers."""
    return (
        get_request_id()
        or getattr(request.state, "request_id", None)
        or request.headers.get(settings.log.request_id_header)
    )


def _rate_limit_headers(exc: RateLimitAppError) -> dict[str, str]:
    """Build throttling headers from the error details."""
    details = exc.details or {}
    headers = {
        "Retry-After": str(details.get("retry_after", 60)),
        "X-RateLimit-Remaining": str(details.get("remaining", 0)),
        "X-RateLimit-Reset": str(details.get("reset_at", 0)),
    }
    if "limit" in details:
        headers["X-RateLimit-Limit"] = str(details["limit"])
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    The HTTP status comes from ``exc.http_status`` so new error classes only
    need to declare it once in ``app.core.errors``.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = exc.http_status

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": _request_id(request),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": _request_id(request),
    }

    if exc.details:
        error_content["details"] = exc.details

    headers = None
    if isinstance(exc, RateLimitAppError) and settings.rate_limit.include_headers:
        headers = _rate_limit_headers(exc)

    return JSONResponse(
        status_code=status_code,
        content={"error": jsonable_encoder(error_content)},
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed or missing request fields as a 400 validation error."""
    fields = [
        ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        for err in exc.errors()
    ]

    logger.info(
        "request_validation_failed",
        extra={
            "request_path": request.url.path,
            "fields": fields,
            "request_id": _request_id(request),
        },
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "validation_error",
                "message": "Required fields are missing or malformed.",
                "request_id": _request_id(request),
                "details": {"fields": fields},
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers.
    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": _request_id(request),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": _request_id(request),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
