"""In-memory rate limiter with per-key windows and temporary blocks.

Notes:
- Per-process only: running multiple workers multiplies the effective limit
  and a restart clears every counter.
- Thread-safe: each check is one read-modify-write under a lock, so
  concurrent requests from the same client can never under-count.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig, RateLimitResult


@dataclass
class _RateLimitRecord:
    count: int
    reset_at: float
    blocked: bool = False
    block_expires_at: float | None = None

    def is_blocking(self, now: float) -> bool:
        return self.blocked and self.block_expires_at is not None and self.block_expires_at > now

    def is_stale(self, now: float) -> bool:
        block_over = self.block_expires_at is None or self.block_expires_at < now
        return self.reset_at < now and block_over


class InMemoryRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping one counting window per ``prefix:identifier``.

    A window opens with the first request of a key and lasts
    ``window_seconds``. Requests beyond ``max_requests`` inside the window are
    rejected; if the config has a block duration, the key is additionally
    blocked until that duration elapses, even when the window rolls over in
    the meantime.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the limiter.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, _RateLimitRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @staticmethod
    def build_key(identifier: str, config: RateLimitConfig) -> str:
        return f"{config.key_prefix or 'default'}:{identifier}"

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request and decide whether it may proceed.

        Args:
            identifier: Client identifier (e.g., IP address).
            config: Limiter thresholds.

        Returns:
            RateLimitResult with the decision and header metadata.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        key = self.build_key(identifier, config)
        now = self._clock()

        with self._lock:
            record = self._records.get(key)

            if record is not None and record.is_blocking(now):
                return self._rejected(config, now, until=record.block_expires_at, blocked=True)

            if record is None or record.reset_at < now:
                record = _RateLimitRecord(count=1, reset_at=now + config.window_seconds)
                self._records[key] = record
                return RateLimitResult(
                    allowed=True,
                    limit=config.max_requests,
                    remaining=config.max_requests - 1,
                    reset_at=int(math.ceil(record.reset_at)),
                )

            record.count += 1

            if record.count > config.max_requests:
                if config.block_duration_seconds:
                    record.blocked = True
                    record.block_expires_at = now + config.block_duration_seconds
                    return self._rejected(config, now, until=record.block_expires_at, blocked=True)
                return self._rejected(config, now, until=record.reset_at, blocked=False)

            return RateLimitResult(
                allowed=True,
                limit=config.max_requests,
                remaining=config.max_requests - record.count,
                reset_at=int(math.ceil(record.reset_at)),
            )

    def sweep(self) -> int:
        """Remove entries whose window and block have both expired."""
        now = self._clock()
        with self._lock:
            stale = [key for key, record in self._records.items() if record.is_stale(now)]
            for key in stale:
                del self._records[key]
        return len(stale)

    def reset(self) -> None:
        """Forget every counter and block."""
        with self._lock:
            self._records.clear()

    @staticmethod
    def _rejected(
        config: RateLimitConfig, now: float, *, until: float, blocked: bool
    ) -> RateLimitResult:
        return RateLimitResult(
            allowed=False,
            limit=config.max_requests,
            remaining=0,
            reset_at=int(math.ceil(until)),
            blocked=blocked,
            retry_after_seconds=max(0, int(math.ceil(until - now))),
        )
