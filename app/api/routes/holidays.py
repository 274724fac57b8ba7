from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_user
from app.core.rate_limit import API, RateLimit
from app.schemas.holidays import HolidayResponse
from app.services.holiday_service import get_holidays

router = APIRouter(
    tags=["Holidays"],
    dependencies=[Depends(RateLimit(API)), Depends(get_current_user)],
)


@router.get("/holidays", response_model=HolidayResponse)
async def list_holidays(
    year: int = Query(..., ge=1900, le=2100),
    month: int | None = Query(None, ge=1, le=12),
) -> HolidayResponse:
    """Public holidays for a month, or the whole year when ``month`` is omitted.

    ``source`` tells whether the data came from the API, the 24-hour cache,
    the no-key fallback or a failed upstream call.
    """
    return await get_holidays(year, month)
