"""Factory for the configured holiday client."""

from app.adapters.holidays.base import AbstractHolidayClient
from app.adapters.holidays.data_go_kr import DataGoKrHolidayClient
from app.core.config import HolidaySettings, settings


def create_holiday_client(cfg: HolidaySettings | None = None) -> AbstractHolidayClient | None:
    """Instantiate the holiday client from settings.

    Returns:
        A configured client, or None when no API key is set (callers then
        serve fallback data instead of calling out).
    """
    cfg = cfg or settings.holidays
    if not cfg.api_key:
        return None
    return DataGoKrHolidayClient(
        service_key=cfg.api_key,
        base_url=cfg.base_url,
        timeout_seconds=cfg.timeout_seconds,
    )
