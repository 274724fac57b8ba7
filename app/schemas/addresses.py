"""Pydantic schemas for saved delivery addresses and destinations."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.common import ORMModel, RequestModel, blank_to_none
from app.utils.order_codes import format_phone_number


class AddressIn(RequestModel):
    """Body of address create/update; updates replace every field."""

    nickname: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=500)
    address_detail: str | None = Field(None, max_length=500)
    is_default: bool = False

    @field_validator("address_detail", mode="before")
    @classmethod
    def empty_to_none(cls, value):
        return blank_to_none(value)


class AddressOut(ORMModel):
    id: uuid.UUID
    nickname: str
    address: str
    address_detail: str | None
    is_default: bool
    usage_count: int
    last_used_at: datetime | None
    created_at: datetime
    updated_at: datetime


class AddressResponse(ORMModel):
    message: str | None = None
    address: AddressOut


class AddressListResponse(ORMModel):
    addresses: list[AddressOut]


class DestinationIn(RequestModel):
    """Body of destination create/update; updates replace every field."""

    nickname: str = Field(..., min_length=1, max_length=100)
    business_name: str = Field(..., min_length=1, max_length=200)
    business_number: str | None = Field(None, max_length=32)
    contact_name: str = Field(..., min_length=1, max_length=100)
    phone1: str = Field(..., min_length=1, max_length=32)
    phone2: str | None = Field(None, max_length=32)
    address: str = Field(..., min_length=1, max_length=500)
    address_detail: str | None = Field(None, max_length=500)
    is_default: bool = False

    @field_validator("business_number", "phone2", "address_detail", mode="before")
    @classmethod
    def empty_to_none(cls, value):
        return blank_to_none(value)

    @field_validator("phone1", "phone2")
    @classmethod
    def hyphenate_phone(cls, value: str | None) -> str | None:
        return format_phone_number(value) if value else value


class DestinationOut(ORMModel):
    id: uuid.UUID
    nickname: str
    business_name: str
    business_number: str | None
    contact_name: str
    phone1: str
    phone2: str | None
    address: str
    address_detail: str | None
    is_default: bool
    usage_count: int
    last_used_at: datetime | None
    created_at: datetime
    updated_at: datetime


class DestinationResponse(ORMModel):
    message: str | None = None
    destination: DestinationOut


class DestinationListResponse(ORMModel):
    destinations: list[DestinationOut]
