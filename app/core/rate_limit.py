"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency object only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- Separate budgets: each abuse vector (login, signup, verification-code
  guessing, order creation) has its own named limiter so it is never bounded
  only by the generic API limit.

Clients are identified by IP address, taken from proxy headers when present.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig
from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.config import RateLimitSettings, settings
from app.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

API = "api"
AUTH = "auth"
SIGNUP = "signup"
VERIFY = "verify"
ORDER_CREATE = "order-create"


def build_limiter_configs(cfg: RateLimitSettings) -> dict[str, RateLimitConfig]:
    """Translate settings into one RateLimitConfig per named limiter."""

    def _config(prefix: str, window: int, max_requests: int, block: int) -> RateLimitConfig:
        return RateLimitConfig(
            window_seconds=window,
            max_requests=max_requests,
            block_duration_seconds=block or None,
            key_prefix=prefix,
        )

    return {
        API: _config(API, cfg.api_window_seconds, cfg.api_max_requests, cfg.api_block_seconds),
        AUTH: _config(AUTH, cfg.auth_window_seconds, cfg.auth_max_requests, cfg.auth_block_seconds),
        SIGNUP: _config(
            SIGNUP, cfg.signup_window_seconds, cfg.signup_max_requests, cfg.signup_block_seconds
        ),
        VERIFY: _config(
            VERIFY, cfg.verify_window_seconds, cfg.verify_max_requests, cfg.verify_block_seconds
        ),
        ORDER_CREATE: _config(
            ORDER_CREATE,
            cfg.order_create_window_seconds,
            cfg.order_create_max_requests,
            cfg.order_create_block_seconds,
        ),
    }


_limiter: AbstractRateLimiter | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter store.

    The instance is cached in-module to preserve state across requests.
    """

    global _limiter

    if _limiter is None:
        _limiter = InMemoryRateLimiter()
    return _limiter


def set_rate_limiter(limiter: AbstractRateLimiter | None) -> None:
    """Replace the process-wide store (tests inject a fake clock this way)."""

    global _limiter
    _limiter = limiter


def get_client_ip(request: Request) -> str:
    """Best-effort client IP, honouring common reverse-proxy headers."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value:
            return value.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def hash_identifier(identifier: str) -> str:
    """Hash an identifier for logging without exposing it."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


class RateLimit:
    """FastAPI dependency enforcing one named limiter.

    Usage:
        @router.post("/signup", dependencies=[Depends(RateLimit(SIGNUP))])
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__(self, request: Request) -> None:
        """Consume one unit of the caller's budget.

        Raises:
            RateLimitAppError: 429 when the window is exhausted or the client
                is blocked.
        """

        if not settings.rate_limit.enabled:
            return

        config = build_limiter_configs(settings.rate_limit)[self.name]
        client_ip = get_client_ip(request)
        result = get_rate_limiter().check(client_ip, config)

        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "limiter": self.name,
                    "client_hash": hash_identifier(client_ip),
                    "remaining": result.remaining,
                },
            )
            return

        retry_after = result.retry_after_seconds or 0
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "limiter": self.name,
                "client_hash": hash_identifier(client_ip),
                "limit": result.limit,
                "blocked": result.blocked,
                "window_s": config.window_seconds,
                "retry_after_s": retry_after,
            },
        )

        if result.blocked:
            raise RateLimitAppError(
                code="rate_limit_blocked",
                message="Too many attempts. You are temporarily blocked; try again later.",
                details={
                    "blocked": True,
                    "limit": result.limit,
                    "remaining": 0,
                    "reset_at": result.reset_at,
                    "retry_after": retry_after,
                },
            )
        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message="Request limit exceeded. Please try again shortly.",
            details={
                "blocked": False,
                "limit": result.limit,
                "remaining": 0,
                "reset_at": result.reset_at,
                "retry_after": retry_after,
            },
        )


async def sweep_periodically(limiter: AbstractRateLimiter, interval_seconds: float) -> None:
    """Purge expired limiter entries forever; cancel the task to stop it."""

    while True:
        await asyncio.sleep(interval_seconds)
        removed = limiter.sweep()
        if removed:
            logger.debug("rate_limit.swept", extra={"removed": removed})
