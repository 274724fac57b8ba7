from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from app.core.auth import CurrentUser
from app.core.config import settings
from app.core.rate_limit import API, ORDER_CREATE, RateLimit
from app.db.session import SessionDep
from app.domain.order_status import OrderStatus
from app.schemas.orders import (
    OrderCreate,
    OrderDeleteResponse,
    OrderDetailOut,
    OrderDetailResponse,
    OrderListResponse,
    OrderMutationResponse,
    OrderOut,
    OrderUpdate,
)
from app.schemas.recent_items import RecentItemListResponse, RecentItemOut
from app.services import order_service

router = APIRouter(tags=["Orders"], dependencies=[Depends(RateLimit(API))])


@router.get("/orders", response_model=OrderListResponse)
def list_orders(
    user: CurrentUser,
    session: SessionDep,
    status_filter: OrderStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.app.default_page_size, ge=1, le=settings.app.max_page_size),
) -> OrderListResponse:
    """List the caller's orders, newest first."""
    orders, pagination = order_service.list_orders(
        session, user, status=status_filter, page=page, limit=limit
    )
    return OrderListResponse(
        orders=[OrderOut.model_validate(order) for order in orders],
        pagination=pagination,
    )


@router.post(
    "/orders",
    response_model=OrderMutationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit(ORDER_CREATE))],
)
def create_order(payload: OrderCreate, user: CurrentUser, session: SessionDep) -> OrderMutationResponse:
    """Create an order as DRAFT (editable) or SENT (link shared right away).

    The response carries the public ``token`` and the 4-digit
    ``verification_code`` the recipient has to enter.
    """
    order = order_service.create_order(session, user, payload)
    return OrderMutationResponse(message="Order created.", order=OrderOut.model_validate(order))


@router.get("/orders/{order_id}", response_model=OrderDetailResponse)
def get_order(order_id: uuid.UUID, user: CurrentUser, session: SessionDep) -> OrderDetailResponse:
    order = order_service.get_order(session, user, order_id)
    return OrderDetailResponse(order=OrderDetailOut.model_validate(order))


@router.put("/orders/{order_id}", response_model=OrderMutationResponse)
def update_order(
    order_id: uuid.UUID, payload: OrderUpdate, user: CurrentUser, session: SessionDep
) -> OrderMutationResponse:
    """Edit a DRAFT order. Supplying ``items`` replaces all lines."""
    order = order_service.update_order(session, user, order_id, payload)
    return OrderMutationResponse(message="Order updated.", order=OrderOut.model_validate(order))


@router.delete("/orders/{order_id}", response_model=OrderDeleteResponse)
def delete_order(order_id: uuid.UUID, user: CurrentUser, session: SessionDep) -> OrderDeleteResponse:
    """Delete a DRAFT order; any later order is cancelled instead."""
    order = order_service.delete_order(session, user, order_id)
    if order is None:
        return OrderDeleteResponse(message="Order deleted.", deleted=True)
    return OrderDeleteResponse(
        message="Order cancelled.", deleted=False, order=OrderOut.model_validate(order)
    )


@router.get("/recent-items", response_model=RecentItemListResponse)
def list_recent_items(
    user: CurrentUser,
    session: SessionDep,
    search: str | None = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
) -> RecentItemListResponse:
    """Frequently ordered items, most used first."""
    items = order_service.list_recent_items(session, user, search=search, limit=limit)
    return RecentItemListResponse(items=[RecentItemOut.model_validate(item) for item in items])
