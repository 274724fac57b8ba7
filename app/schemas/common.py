"""Shared schema helpers and response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class RequestModel(BaseModel):
    """Base for request bodies: surrounding whitespace is stripped."""

    model_config = ConfigDict(str_strip_whitespace=True)


class ORMModel(BaseModel):
    """Base for responses built from SQLAlchemy objects."""

    model_config = ConfigDict(from_attributes=True)


def blank_to_none(value: Any) -> Any:
    """Turn empty optional strings into None."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def required_text(max_length: int, description: str | None = None) -> Any:
    """Non-empty, length-bounded text field."""
    return Field(..., min_length=1, max_length=max_length, description=description)
