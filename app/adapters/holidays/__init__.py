"""Holiday adapter layer - abstracts over public-holiday providers."""

from app.adapters.holidays.base import AbstractHolidayClient
from app.adapters.holidays.data_go_kr import DataGoKrHolidayClient
from app.adapters.holidays.factory import create_holiday_client

__all__ = [
    "AbstractHolidayClient",
    "DataGoKrHolidayClient",
    "create_holiday_client",
]
