"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build a fresh instance.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import (
    addresses_router,
    auth_router,
    health_router,
    holidays_router,
    orders_router,
    public_orders_router,
)
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware, security_headers_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import get_rate_limiter, sweep_periodically
from app.db.session import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and run the rate-limit sweeper for the app's lifetime."""
    init_db()
    sweeper = asyncio.create_task(
        sweep_periodically(get_rate_limiter(), settings.rate_limit.sweep_interval_seconds)
    )
    logger.info("app.started")
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Order Link API",
        description=(
            "Order management for small suppliers: create purchase orders from "
            "saved destinations, share them through a tokenized link, and let the "
            "recipient verify with the last 4 digits of their phone number before "
            "accepting, rejecting or reviewing the order."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Last registered runs first: request id wraps the security headers
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(auth_router, prefix="/v1")
    app.include_router(orders_router, prefix="/v1")
    app.include_router(addresses_router, prefix="/v1")
    app.include_router(public_orders_router, prefix="/v1")
    app.include_router(holidays_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
