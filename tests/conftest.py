"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``app`` import so settings, the
engine and the session factory are built for an in-memory SQLite database.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["DB_URL"] = "sqlite://"
os.environ["APP_BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ.pop("HOLIDAY_API_KEY", None)
os.environ.pop("PUBLIC_DATA_API_KEY", None)

from datetime import date, timedelta
from typing import Any, Callable, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.app_factory import create_app
from app.core.rate_limit import set_rate_limiter
from app.db import models  # noqa: F401  registers the mappers
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.schemas.auth import LoginRequest, SignupRequest
from app.services import user_service
from app.services.holiday_service import get_holiday_cache

DEFAULT_PASSWORD = "password123"


@pytest.fixture(autouse=True)
def _fresh_state() -> Iterator[None]:
    """Empty tables, limiter and holiday cache for every test."""
    Base.metadata.create_all(bind=engine)
    set_rate_limiter(InMemoryRateLimiter())
    get_holiday_cache().clear()
    yield
    Base.metadata.drop_all(bind=engine)
    set_rate_limiter(None)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def db_session() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., dict[str, Any]]:
    """Create an account and log it in; returns the user and bearer headers."""

    def _make(email: str = "owner@example.com", **overrides: Any) -> dict[str, Any]:
        payload = SignupRequest(
            email=email,
            password=overrides.pop("password", DEFAULT_PASSWORD),
            name=overrides.pop("name", "Kim Supplier"),
            phone=overrides.pop("phone", "010-9999-8888"),
            business_name=overrides.pop("business_name", "Fresh Foods"),
        )
        user = user_service.signup(db_session, payload)
        token = user_service.login(
            db_session, LoginRequest(email=email, password=payload.password)
        ).access_token
        return {"user": user, "token": token, "headers": {"Authorization": f"Bearer {token}"}}

    return _make


@pytest.fixture
def auth_headers(make_user) -> dict[str, str]:
    return make_user()["headers"]


@pytest.fixture
def order_payload() -> Callable[..., dict[str, Any]]:
    """Valid ``POST /v1/orders`` body; keyword arguments override fields."""

    def _payload(**overrides: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "recipient_name": "Lee Buyer",
            "recipient_business_name": "Lee Mart",
            "recipient_phone1": "01012345678",
            "recipient_address": "12 Market St, Seoul",
            "delivery_date": (date.today() + timedelta(days=3)).isoformat(),
            "items": [
                {"item_name": "Cabbage", "item_spec": "10kg box", "quantity": 3, "unit": "box"},
                {"item_name": "Onion", "quantity": "2.5", "unit": "kg"},
            ],
        }
        body.update(overrides)
        return body

    return _payload


@pytest.fixture
def create_order(client: TestClient, auth_headers, order_payload) -> Callable[..., dict[str, Any]]:
    """Create an order through the API and return its JSON representation."""

    def _create(headers: dict[str, str] | None = None, **overrides: Any) -> dict[str, Any]:
        resp = client.post("/v1/orders", json=order_payload(**overrides), headers=headers or auth_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["order"]

    return _create
