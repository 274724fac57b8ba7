"""Holiday lookup with an in-memory 24-hour cache.

Upstream failures never fail the request: the caller gets an empty map
tagged ``source="error"`` and can fall back to weekend-only scheduling.
"""

from __future__ import annotations

import asyncio
import logging

from app.adapters.holidays import AbstractHolidayClient, create_holiday_client
from app.core.config import settings
from app.core.errors import UpstreamAppError
from app.schemas.holidays import HolidayResponse
from app.utils.simple_cache import SimpleTTLCache, build_holiday_cache_key

logger = logging.getLogger(__name__)

_CACHE: SimpleTTLCache[dict[str, str]] = SimpleTTLCache(
    ttl_seconds=settings.holidays.cache_ttl_seconds,
    max_entries=256,
)


def get_holiday_cache() -> SimpleTTLCache[dict[str, str]]:
    return _CACHE


async def _fetch(client: AbstractHolidayClient, year: int, month: int | None) -> dict[str, str]:
    if month:
        return await client.fetch_month(year, month)

    monthly = await asyncio.gather(*(client.fetch_month(year, m) for m in range(1, 13)))
    holidays: dict[str, str] = {}
    for month_holidays in monthly:
        holidays.update(month_holidays)
    return holidays


async def get_holidays(
    year: int,
    month: int | None = None,
    *,
    client: AbstractHolidayClient | None = None,
    cache: SimpleTTLCache[dict[str, str]] | None = None,
) -> HolidayResponse:
    """Return holidays for a month, or for a whole year when ``month`` is None.

    Args:
        year: Four-digit year.
        month: Optional month, 1-12.
        client: Holiday provider; defaults to the configured one.
        cache: TTL cache; defaults to the process-wide one.
    """
    cache = cache if cache is not None else _CACHE
    cache_key = build_holiday_cache_key(year, month)

    cached = cache.get(cache_key)
    if cached is not None:
        logger.debug("holiday.cache_hit", extra={"cache_key": cache_key})
        return HolidayResponse(holidays=cached, source="cache")

    client = client or create_holiday_client()
    if client is None:
        logger.warning("holiday.api_key_missing")
        return HolidayResponse(holidays={}, source="fallback")

    try:
        holidays = await _fetch(client, year, month)
    except UpstreamAppError as exc:
        logger.error(
            "holiday.fetch_failed",
            extra={"cache_key": cache_key, "error_code": exc.code, "error_message": exc.message},
        )
        return HolidayResponse(holidays={}, source="error")

    cache.set(cache_key, holidays)
    logger.info("holiday.fetched", extra={"cache_key": cache_key, "count": len(holidays)})
    return HolidayResponse(holidays=holidays, source="api")
