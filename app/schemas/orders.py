"""Pydantic schemas for owner-side order management."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import Field, field_validator

from app.domain.order_status import OrderStatus
from app.schemas.common import ORMModel, Pagination, RequestModel, blank_to_none
from app.utils.order_codes import format_phone_number


class OrderItemIn(RequestModel):
    """One order line as submitted by the owner."""

    item_code: str | None = Field(None, max_length=64)
    item_name: str = Field(..., min_length=1, max_length=200)
    item_spec: str | None = Field(None, max_length=200)
    quantity: Decimal = Field(..., gt=0, max_digits=12, decimal_places=3)
    unit: str = Field(..., min_length=1, max_length=20)

    @field_validator("item_code", "item_spec", mode="before")
    @classmethod
    def empty_to_none(cls, value):
        return blank_to_none(value)


class _RecipientFields(RequestModel):
    @field_validator(
        "recipient_business_number",
        "recipient_phone2",
        "recipient_address_detail",
        "delivery_time",
        "memo",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def empty_to_none(cls, value):
        return blank_to_none(value)

    @field_validator("recipient_phone1", "recipient_phone2", check_fields=False)
    @classmethod
    def hyphenate_phone(cls, value: str | None) -> str | None:
        return format_phone_number(value) if value else value


class OrderCreate(_RecipientFields):
    """Body of ``POST /v1/orders``."""

    recipient_name: str = Field(..., min_length=1, max_length=100)
    recipient_business_name: str = Field(..., min_length=1, max_length=200)
    recipient_business_number: str | None = Field(None, max_length=32)
    recipient_phone1: str = Field(..., min_length=1, max_length=32)
    recipient_phone2: str | None = Field(None, max_length=32)
    recipient_address: str = Field(..., min_length=1, max_length=500)
    recipient_address_detail: str | None = Field(None, max_length=500)
    delivery_date: date
    delivery_time: str | None = Field(None, max_length=50)
    memo: str | None = Field(None, max_length=2000)
    items: list[OrderItemIn] = Field(..., min_length=1)
    status: OrderStatus = Field(
        OrderStatus.DRAFT,
        description="Initial status: DRAFT keeps the order editable, SENT shares it right away.",
    )
    saved_address_id: uuid.UUID | None = Field(
        None, description="Saved address the recipient address was picked from."
    )
    saved_destination_id: uuid.UUID | None = Field(
        None, description="Saved destination the recipient was picked from."
    )


class OrderUpdate(_RecipientFields):
    """Body of ``PUT /v1/orders/{id}``; only supplied fields change."""

    recipient_name: str | None = Field(None, min_length=1, max_length=100)
    recipient_business_name: str | None = Field(None, min_length=1, max_length=200)
    recipient_business_number: str | None = Field(None, max_length=32)
    recipient_phone1: str | None = Field(None, min_length=1, max_length=32)
    recipient_phone2: str | None = Field(None, max_length=32)
    recipient_address: str | None = Field(None, min_length=1, max_length=500)
    recipient_address_detail: str | None = Field(None, max_length=500)
    delivery_date: date | None = None
    delivery_time: str | None = Field(None, max_length=50)
    memo: str | None = Field(None, max_length=2000)
    items: list[OrderItemIn] | None = Field(None, min_length=1)
    status: OrderStatus | None = None


class OrderItemOut(ORMModel):
    id: uuid.UUID
    item_code: str | None
    item_name: str
    item_spec: str | None
    quantity: float
    unit: str
    sort_order: int


class OrderHistoryOut(ORMModel):
    id: uuid.UUID
    status: OrderStatus
    reason: str | None
    changed_by: str
    ip_address: str | None
    user_agent: str | None
    created_at: datetime


class OrderOut(ORMModel):
    id: uuid.UUID
    order_number: str
    recipient_name: str
    recipient_business_name: str
    recipient_business_number: str | None
    recipient_phone1: str
    recipient_phone2: str | None
    recipient_address: str
    recipient_address_detail: str | None
    delivery_date: date
    delivery_time: str | None
    memo: str | None
    status: OrderStatus
    token: str
    token_expires_at: datetime
    verification_code: str
    view_count: int
    last_viewed_at: datetime | None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemOut]


class OrderDetailOut(OrderOut):
    histories: list[OrderHistoryOut]


class OrderDetailResponse(ORMModel):
    order: OrderDetailOut


class OrderMutationResponse(ORMModel):
    message: str
    order: OrderOut


class OrderListResponse(ORMModel):
    orders: list[OrderOut]
    pagination: Pagination


class OrderDeleteResponse(ORMModel):
    """DRAFT orders are removed (``deleted``); sent orders come back cancelled."""

    message: str
    deleted: bool
    order: OrderOut | None = None
