"""Token-gated order access for recipients.

A link resolves only while the order is in a public status and before its
token expires. Status changes made here use conditional UPDATEs so two
concurrent requests cannot both move the same order.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.errors import (
    AuthenticationAppError,
    NotFoundAppError,
    OrderStateAppError,
    TokenExpiredAppError,
    ValidationAppError,
)
from app.db.base import utcnow
from app.db.models import Order, OrderHistory
from app.db.session import unit_of_work
from app.domain.order_status import (
    PUBLIC_STATUSES,
    RECIPIENT_MARKER,
    RECIPIENT_RESPONSES,
    RESPONDABLE_STATUSES,
    OrderStatus,
)

logger = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 500


@dataclass(frozen=True)
class ClientInfo:
    """Who performed a recipient action, as recorded in order history."""

    ip_address: str | None = None
    user_agent: str | None = None

    def history_fields(self) -> dict[str, str | None]:
        user_agent = self.user_agent[:USER_AGENT_MAX_LENGTH] if self.user_agent else None
        return {"ip_address": self.ip_address, "user_agent": user_agent}


def load_public_order(session: Session, token: str) -> Order:
    """Resolve a link token to a visible, unexpired order.

    Raises:
        NotFoundAppError: Unknown token, or the order is DRAFT/CANCELLED.
        TokenExpiredAppError: The link is past ``token_expires_at``.
    """
    order = session.scalar(
        select(Order)
        .options(selectinload(Order.items), joinedload(Order.user))
        .where(Order.token == token, Order.status.in_(list(PUBLIC_STATUSES)))
    )
    if order is None:
        raise NotFoundAppError(code="order_not_found", message="Order not found.")

    if utcnow() > order.token_expires_at:
        logger.info("public_order.token_expired", extra={"order_id": str(order.id)})
        raise TokenExpiredAppError(
            code="token_expired",
            message="This order link has expired.",
        )
    return order


def verify_recipient(session: Session, token: str, code: str | None, client: ClientInfo) -> Order:
    """Check the 4-digit code and record the view.

    The first successful verification of a SENT order moves it to VIEWED and
    logs one history row; later verifications only bump the view counter.

    Raises:
        ValidationAppError: No code supplied.
        NotFoundAppError / TokenExpiredAppError: See :func:`load_public_order`.
        AuthenticationAppError: Code does not match.
    """
    if not code or not code.strip():
        raise ValidationAppError(
            code="missing_verification_code",
            message="Please enter the verification code.",
            details={"field": "verification_code"},
        )

    order = load_public_order(session, token)
    if not secrets.compare_digest(code.encode("utf-8"), order.verification_code.encode("utf-8")):
        logger.warning("public_order.verification_failed", extra={"order_id": str(order.id)})
        raise AuthenticationAppError(
            code="verification_code_mismatch",
            message="The verification code does not match.",
        )

    now = utcnow()
    with unit_of_work(session):
        session.execute(
            update(Order)
            .where(Order.id == order.id)
            .values(view_count=Order.view_count + 1, last_viewed_at=now)
        )
        transitioned = session.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == OrderStatus.SENT)
            .values(status=OrderStatus.VIEWED)
        ).rowcount
        if transitioned:
            session.add(
                OrderHistory(
                    order_id=order.id,
                    status=OrderStatus.VIEWED,
                    changed_by=RECIPIENT_MARKER,
                    **client.history_fields(),
                )
            )

    session.refresh(order)
    logger.info(
        "public_order.verified",
        extra={
            "order_id": str(order.id),
            "status": order.status.value,
            "first_view": bool(transitioned),
        },
    )
    return order


def respond_to_order(
    session: Session,
    token: str,
    response: str | None,
    reason: str | None,
    client: ClientInfo,
) -> Order:
    """Record the recipient's decision on an order.

    Raises:
        ValidationAppError: ``response`` is not ACCEPTED/REJECTED/REVIEWING.
        NotFoundAppError / TokenExpiredAppError: See :func:`load_public_order`.
        OrderStateAppError: The order was already answered.
    """
    valid_responses = sorted(status.value for status in RECIPIENT_RESPONSES)
    if response not in valid_responses:
        raise ValidationAppError(
            code="invalid_response",
            message="Response must be one of ACCEPTED, REJECTED or REVIEWING.",
            details={"field": "response", "allowed": valid_responses},
        )
    target = OrderStatus(response)

    order = load_public_order(session, token)
    if order.status not in RESPONDABLE_STATUSES:
        raise _already_processed(order.status)

    with unit_of_work(session):
        updated = session.execute(
            update(Order)
            .where(Order.id == order.id, Order.status.in_(list(RESPONDABLE_STATUSES)))
            .values(status=target)
        ).rowcount
        if not updated:
            # answered by a concurrent request after the read above
            raise _already_processed(order.status)
        session.add(
            OrderHistory(
                order_id=order.id,
                status=target,
                reason=reason,
                changed_by=RECIPIENT_MARKER,
                **client.history_fields(),
            )
        )

    session.refresh(order)
    logger.info(
        "public_order.responded",
        extra={"order_id": str(order.id), "status": target.value},
    )
    return order


def _already_processed(status: OrderStatus) -> OrderStateAppError:
    return OrderStateAppError(
        code="order_already_processed",
        message="This order has already been processed.",
        details={"status": status.value},
    )
