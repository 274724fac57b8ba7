"""Owner-side order operations.

Every mutation runs inside one :func:`unit_of_work`, so an order is never
left without its items, its history row or its usage counters.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime
from typing import Iterable

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.errors import (
    ConflictAppError,
    NotFoundAppError,
    OrderStateAppError,
    ValidationAppError,
)
from app.db.base import utcnow
from app.db.models import (
    Order,
    OrderHistory,
    OrderItem,
    RecentItem,
    SavedAddress,
    SavedDestination,
    User,
)
from app.db.session import unit_of_work
from app.domain.order_status import (
    EDITABLE_STATUSES,
    INITIAL_STATUSES,
    Actor,
    OrderStatus,
    allowed,
    next_statuses,
)
from app.schemas.common import Pagination
from app.schemas.orders import OrderCreate, OrderItemIn, OrderUpdate
from app.utils.order_codes import (
    derive_verification_code,
    generate_order_number,
    generate_public_token,
    token_expiry,
)

logger = logging.getLogger(__name__)

# Columns that may not be cleared by an update
_REQUIRED_ORDER_FIELDS = frozenset(
    {
        "recipient_name",
        "recipient_business_name",
        "recipient_phone1",
        "recipient_address",
        "delivery_date",
    }
)


def _order_query():
    return select(Order).options(selectinload(Order.items))


def _get_owned_order(
    session: Session, owner: User, order_id: uuid.UUID, *, with_history: bool = False
) -> Order:
    query = _order_query().where(Order.id == order_id, Order.user_id == owner.id)
    if with_history:
        query = query.options(selectinload(Order.histories))
    order = session.scalar(query)
    if order is None:
        raise NotFoundAppError(code="order_not_found", message="Order not found.")
    return order


def _allocate_order_number(session: Session, now: datetime) -> str:
    """Draw order numbers until one is free or the retries run out.

    After the last retry the candidate is used as-is; a remaining collision
    then surfaces as a unique-constraint error on insert.
    """
    candidate = generate_order_number(now)
    for attempt in range(settings.app.order_number_max_retries):
        taken = session.scalar(select(Order.id).where(Order.order_number == candidate))
        if taken is None:
            return candidate
        logger.info("order.number_collision", extra={"attempt": attempt + 1})
        candidate = generate_order_number(now)
    return candidate


def _build_items(items: Iterable[OrderItemIn]) -> list[OrderItem]:
    return [
        OrderItem(
            item_code=item.item_code,
            item_name=item.item_name,
            item_spec=item.item_spec,
            quantity=item.quantity,
            unit=item.unit,
            sort_order=index,
        )
        for index, item in enumerate(items)
    ]


def _record_recent_items(
    session: Session, owner_id: uuid.UUID, items: Iterable[OrderItemIn], now: datetime
) -> None:
    """Bump the usage counter once per order line, keyed by (name, spec)."""
    # rows touched in this call; pending inserts are invisible to queries until flush
    touched: dict[tuple[str, str], RecentItem] = {}
    for item in items:
        name, spec = item.item_name, item.item_spec or ""
        recent = touched.get((name, spec)) or session.scalar(
            select(RecentItem).where(
                RecentItem.user_id == owner_id,
                RecentItem.item_name == name,
                RecentItem.item_spec == spec,
            )
        )
        if recent is None:
            recent = RecentItem(
                user_id=owner_id,
                item_code=item.item_code,
                item_name=name,
                item_spec=spec,
                unit=item.unit,
                usage_count=1,
                last_used_at=now,
            )
            session.add(recent)
            touched[(name, spec)] = recent
            continue
        touched[(name, spec)] = recent
        recent.usage_count += 1
        recent.last_used_at = now
        recent.unit = item.unit
        if item.item_code:
            recent.item_code = item.item_code


def _touch_saved_record(
    session: Session,
    model,
    record_id: uuid.UUID | None,
    owner_id: uuid.UUID,
    now: datetime,
    code: str,
) -> None:
    if record_id is None:
        return
    record = session.scalar(select(model).where(model.id == record_id, model.user_id == owner_id))
    if record is None:
        raise NotFoundAppError(code=code, message="Saved record not found.")
    record.usage_count += 1
    record.last_used_at = now


def _history(order: Order, status: OrderStatus, owner: User, reason: str | None = None) -> OrderHistory:
    return OrderHistory(order=order, status=status, changed_by=str(owner.id), reason=reason)


def create_order(session: Session, owner: User, payload: OrderCreate) -> Order:
    """Create an order with its items, public link and initial history row.

    Raises:
        ValidationAppError: Initial status other than DRAFT/SENT, or a phone
            number without four digits.
        NotFoundAppError: A referenced saved address/destination is not the
            owner's.
        ConflictAppError: The order number still collided after all retries.
    """
    if payload.status not in INITIAL_STATUSES:
        raise ValidationAppError(
            code="invalid_status",
            message="New orders must start as DRAFT or SENT.",
            details={
                "field": "status",
                "status": payload.status.value,
                "allowed": sorted(s.value for s in INITIAL_STATUSES),
            },
        )

    try:
        verification_code = derive_verification_code(payload.recipient_phone1)
    except ValueError as exc:
        raise ValidationAppError(
            code="invalid_phone",
            message="Recipient phone number must contain at least 4 digits.",
            details={"field": "recipient_phone1"},
        ) from exc

    now = utcnow()
    order = Order(
        user_id=owner.id,
        order_number=_allocate_order_number(session, now),
        recipient_name=payload.recipient_name,
        recipient_business_name=payload.recipient_business_name,
        recipient_business_number=payload.recipient_business_number,
        recipient_phone1=payload.recipient_phone1,
        recipient_phone2=payload.recipient_phone2,
        recipient_address=payload.recipient_address,
        recipient_address_detail=payload.recipient_address_detail,
        delivery_date=payload.delivery_date,
        delivery_time=payload.delivery_time,
        memo=payload.memo,
        status=payload.status,
        token=generate_public_token(),
        token_expires_at=token_expiry(now, settings.app.token_ttl_days),
        verification_code=verification_code,
        view_count=0,
    )
    order.items = _build_items(payload.items)

    try:
        with unit_of_work(session):
            session.add(order)
            session.add(_history(order, payload.status, owner))
            _record_recent_items(session, owner.id, payload.items, now)
            _touch_saved_record(
                session, SavedAddress, payload.saved_address_id, owner.id, now, "address_not_found"
            )
            _touch_saved_record(
                session,
                SavedDestination,
                payload.saved_destination_id,
                owner.id,
                now,
                "destination_not_found",
            )
    except IntegrityError as exc:
        logger.warning("order.create_conflict", extra={"user_id": str(owner.id)})
        raise ConflictAppError(
            code="order_number_conflict",
            message="Could not allocate a unique order number. Please retry.",
        ) from exc

    logger.info(
        "order.created",
        extra={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "status": order.status.value,
            "item_count": len(order.items),
        },
    )
    return order


def update_order(
    session: Session, owner: User, order_id: uuid.UUID, payload: OrderUpdate
) -> Order:
    """Apply a partial update to a DRAFT order.

    Raises:
        NotFoundAppError: Order absent or not owned.
        OrderStateAppError: Order is past DRAFT, or the requested status is
            not reachable.
        ValidationAppError: A required field was explicitly cleared.
    """
    order = _get_owned_order(session, owner, order_id)
    if order.status not in EDITABLE_STATUSES:
        raise OrderStateAppError(
            code="order_not_editable",
            message="Only draft orders can be edited.",
            details={"status": order.status.value},
        )

    changes = payload.model_dump(exclude_unset=True, exclude={"items", "status"})
    cleared = sorted(
        name for name, value in changes.items() if value is None and name in _REQUIRED_ORDER_FIELDS
    )
    if cleared:
        raise ValidationAppError(
            code="validation_error",
            message="Required fields cannot be empty.",
            details={"fields": cleared},
        )

    new_status = payload.status
    if new_status is not None and new_status != order.status:
        if not allowed(order.status, new_status, Actor.OWNER):
            raise OrderStateAppError(
                code="invalid_status_transition",
                message=f"Cannot change status from {order.status.value} to {new_status.value}.",
                details={
                    "status": order.status.value,
                    "allowed": [s.value for s in next_statuses(order.status, Actor.OWNER)],
                },
            )
    else:
        new_status = None

    with unit_of_work(session):
        for name, value in changes.items():
            setattr(order, name, value)
        if payload.items is not None:
            order.items = _build_items(payload.items)
        if new_status is not None:
            order.status = new_status
            session.add(_history(order, new_status, owner))

    logger.info(
        "order.updated",
        extra={
            "order_id": str(order.id),
            "fields": sorted(changes),
            "items_replaced": payload.items is not None,
            "status": order.status.value,
        },
    )
    return order


def delete_order(session: Session, owner: User, order_id: uuid.UUID) -> Order | None:
    """Delete a DRAFT order or cancel a sent one.

    Returns:
        None when the order was removed, otherwise the cancelled order.

    Raises:
        NotFoundAppError: Order absent or not owned.
        OrderStateAppError: Order is already cancelled.
    """
    order = _get_owned_order(session, owner, order_id)

    if order.status == OrderStatus.DRAFT:
        with unit_of_work(session):
            session.delete(order)
        logger.info("order.deleted", extra={"order_id": str(order_id)})
        return None

    if order.status == OrderStatus.CANCELLED:
        raise OrderStateAppError(
            code="order_already_cancelled",
            message="This order is already cancelled.",
            details={"status": order.status.value},
        )

    if not allowed(order.status, OrderStatus.CANCELLED, Actor.OWNER):
        raise OrderStateAppError(
            code="invalid_status_transition",
            message=f"Cannot cancel an order in status {order.status.value}.",
            details={"status": order.status.value},
        )

    previous = order.status
    with unit_of_work(session):
        order.status = OrderStatus.CANCELLED
        session.add(_history(order, OrderStatus.CANCELLED, owner))

    logger.info(
        "order.cancelled",
        extra={"order_id": str(order.id), "previous_status": previous.value},
    )
    return order


def get_order(session: Session, owner: User, order_id: uuid.UUID) -> Order:
    """Owner's order with items and history (newest first)."""
    return _get_owned_order(session, owner, order_id, with_history=True)


def list_orders(
    session: Session,
    owner: User,
    *,
    status: OrderStatus | None = None,
    page: int = 1,
    limit: int | None = None,
) -> tuple[list[Order], Pagination]:
    """Page through the owner's orders, newest first."""
    limit = limit or settings.app.default_page_size
    conditions = [Order.user_id == owner.id]
    if status is not None:
        conditions.append(Order.status == status)

    total = session.scalar(select(func.count()).select_from(Order).where(*conditions)) or 0
    orders = session.scalars(
        _order_query()
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.order_number.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    pagination = Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )
    return list(orders), pagination


def list_recent_items(
    session: Session,
    owner: User,
    *,
    search: str | None = None,
    limit: int = 20,
) -> list[RecentItem]:
    """Most used items first, for auto-suggestion."""
    query = select(RecentItem).where(RecentItem.user_id == owner.id)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(RecentItem.item_name).like(pattern),
                func.lower(RecentItem.item_code).like(pattern),
            )
        )
    query = query.order_by(RecentItem.usage_count.desc(), RecentItem.last_used_at.desc()).limit(limit)
    return list(session.scalars(query).all())
