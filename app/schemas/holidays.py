"""Pydantic schemas for the holiday lookup."""

from typing import Literal

from pydantic import BaseModel, Field


class HolidayResponse(BaseModel):
    holidays: dict[str, str] = Field(
        default_factory=dict,
        description="Public holidays keyed by ISO date (YYYY-MM-DD).",
    )
    source: Literal["api", "cache", "fallback", "error"] = Field(
        ..., description="Where the data came from."
    )
