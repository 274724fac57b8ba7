"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitConfig:
    """Thresholds for one named limiter.

    Attributes:
        window_seconds: Length of the counting window, started by the first
            request of a key.
        max_requests: Requests allowed inside one window.
        block_duration_seconds: When set, exceeding the limit blocks the key
            for this long, independent of the window.
        key_prefix: Namespace separating limiters that share a store.
    """

    window_seconds: float
    max_requests: int
    block_duration_seconds: float | None = None
    key_prefix: str = "default"

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.block_duration_seconds is not None and self.block_duration_seconds <= 0:
            raise ValueError("block_duration_seconds must be > 0 when set")


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when rejected).
        reset_at: UNIX epoch seconds when the window (or block) ends.
        blocked: True when an explicit block is active for the key.
        retry_after_seconds: Suggested wait time in seconds when rejected.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    blocked: bool = False
    retry_after_seconds: int | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request for ``identifier`` under ``config``.

        Args:
            identifier: Client identifier (e.g., IP address).
            config: Limiter thresholds; its prefix namespaces the key.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop entries whose window and block have both expired.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError
