"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses. Each subclass carries
the HTTP status it is rendered with by the global exception handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    hint: str
    field: str
    fields: list[str]
    status: str
    allowed: list[str]
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    blocked: bool
    upstream_status: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    http_status: ClassVar[int] = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when the caller is not authenticated or a secret does not match."""

    http_status = 401


class NotFoundAppError(AppError):
    """Raised when a record is absent or not owned by the caller.

    Both cases share this error on purpose so existence is not leaked.
    """

    http_status = 404


class ConflictAppError(AppError):
    """Raised when a unique field is already taken."""

    http_status = 409


class OrderStateAppError(AppError):
    """Raised when an order's current status forbids the requested change."""

    http_status = 409


class TokenExpiredAppError(AppError):
    """Raised when a public order link is past its expiry."""

    http_status = 410


class RateLimitAppError(AppError):
    """Raised when a named rate limiter rejects the request."""

    http_status = 429


class UpstreamAppError(AppError):
    """Raised when a third-party API call fails."""

    http_status = 502
