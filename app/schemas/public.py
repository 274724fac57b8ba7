"""Pydantic schemas for the recipient's token-gated order view."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, Field

from app.domain.order_status import OrderStatus
from app.schemas.common import ORMModel


class PublicOrderItem(ORMModel):
    id: uuid.UUID
    item_code: str | None
    item_name: str
    item_spec: str | None
    quantity: float
    unit: str


class SupplierOut(ORMModel):
    name: str | None
    business_name: str | None
    phone: str | None
    email: str | None


class PublicOrderOut(ORMModel):
    """What a link holder may see: no token, code, owner id or view stats."""

    id: uuid.UUID
    order_number: str
    recipient_name: str
    recipient_business_name: str
    recipient_phone1: str
    recipient_address: str
    recipient_address_detail: str | None
    delivery_date: date
    delivery_time: str | None
    memo: str | None
    status: OrderStatus
    items: list[PublicOrderItem]
    supplier: SupplierOut = Field(validation_alias=AliasChoices("user", "supplier"))
    created_at: datetime


class PublicOrderResponse(ORMModel):
    order: PublicOrderOut


class VerifyRequest(BaseModel):
    verification_code: str | None = None


class RespondRequest(BaseModel):
    response: str | None = Field(None, description="ACCEPTED, REJECTED or REVIEWING")
    reason: str | None = Field(None, max_length=2000)


class PublicActionResponse(BaseModel):
    success: bool = True
    message: str
    status: OrderStatus
