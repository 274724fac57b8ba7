"""Pydantic schemas for item auto-suggestion."""

from __future__ import annotations

import uuid
from datetime import datetime

from app.schemas.common import ORMModel


class RecentItemOut(ORMModel):
    id: uuid.UUID
    item_code: str | None
    item_name: str
    item_spec: str
    unit: str
    usage_count: int
    last_used_at: datetime


class RecentItemListResponse(ORMModel):
    items: list[RecentItemOut]
