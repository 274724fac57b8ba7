"""Pydantic schemas for signup, login and the current user."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import ORMModel, blank_to_none


class SignupRequest(BaseModel):
    """New supplier account.

    Not whitespace-stripped so passwords are taken verbatim; email format and
    password strength are checked by the user service.
    """

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=32)
    business_name: str | None = Field(None, max_length=200)

    @field_validator("name", "phone", "business_name", mode="before")
    @classmethod
    def empty_to_none(cls, value):
        return blank_to_none(value)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(ORMModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class UserOut(ORMModel):
    id: uuid.UUID
    email: str
    name: str | None = None
    phone: str | None = None
    business_name: str | None = None
    created_at: datetime


class SignupResponse(ORMModel):
    message: str
    user: UserOut
