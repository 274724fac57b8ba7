from __future__ import annotations

from app.api.routes.addresses import router as addresses_router
from app.api.routes.auth import router as auth_router
from app.api.routes.health import router as health_router
from app.api.routes.holidays import router as holidays_router
from app.api.routes.orders import router as orders_router
from app.api.routes.public_orders import router as public_orders_router

__all__ = [
    "addresses_router",
    "auth_router",
    "health_router",
    "holidays_router",
    "orders_router",
    "public_orders_router",
]
