"""Saved order destinations (recipient businesses) of an owner.

Picking a destination in the order form copies its fields into the order;
the order service bumps ``usage_count`` when that happens.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, nulls_last, or_, select, update
from sqlalchemy.orm import Session

from app.core.errors import NotFoundAppError
from app.db.models import SavedDestination, User
from app.db.session import unit_of_work
from app.schemas.addresses import DestinationIn

logger = logging.getLogger(__name__)


def _get_owned(session: Session, owner: User, destination_id: uuid.UUID) -> SavedDestination:
    destination = session.scalar(
        select(SavedDestination).where(
            SavedDestination.id == destination_id, SavedDestination.user_id == owner.id
        )
    )
    if destination is None:
        raise NotFoundAppError(code="destination_not_found", message="Destination not found.")
    return destination


def _clear_default(session: Session, owner: User, keep_id: uuid.UUID | None = None) -> None:
    # at most one default per owner
    stmt = update(SavedDestination).where(
        SavedDestination.user_id == owner.id, SavedDestination.is_default.is_(True)
    )
    if keep_id is not None:
        stmt = stmt.where(SavedDestination.id != keep_id)
    session.execute(stmt.values(is_default=False))


def list_destinations(
    session: Session, owner: User, search: str | None = None
) -> list[SavedDestination]:
    """List destinations, optionally matching business name, contact or nickname."""
    query = select(SavedDestination).where(SavedDestination.user_id == owner.id)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(SavedDestination.business_name).like(pattern),
                func.lower(SavedDestination.contact_name).like(pattern),
                func.lower(SavedDestination.nickname).like(pattern),
            )
        )
    query = query.order_by(
        SavedDestination.is_default.desc(),
        SavedDestination.usage_count.desc(),
        nulls_last(SavedDestination.last_used_at.desc()),
        SavedDestination.created_at.desc(),
    )
    return list(session.scalars(query).all())


def get_destination(session: Session, owner: User, destination_id: uuid.UUID) -> SavedDestination:
    return _get_owned(session, owner, destination_id)


def create_destination(session: Session, owner: User, payload: DestinationIn) -> SavedDestination:
    destination = SavedDestination(user_id=owner.id, **payload.model_dump())
    with unit_of_work(session):
        if payload.is_default:
            _clear_default(session, owner)
        session.add(destination)
    logger.info(
        "destination.created",
        extra={"destination_id": str(destination.id), "is_default": destination.is_default},
    )
    return destination


def update_destination(
    session: Session, owner: User, destination_id: uuid.UUID, payload: DestinationIn
) -> SavedDestination:
    destination = _get_owned(session, owner, destination_id)
    with unit_of_work(session):
        if payload.is_default:
            _clear_default(session, owner, keep_id=destination.id)
        for name, value in payload.model_dump().items():
            setattr(destination, name, value)
    logger.info("destination.updated", extra={"destination_id": str(destination.id)})
    return destination


def delete_destination(session: Session, owner: User, destination_id: uuid.UUID) -> None:
    destination = _get_owned(session, owner, destination_id)
    with unit_of_work(session):
        session.delete(destination)
    logger.info("destination.deleted", extra={"destination_id": str(destination_id)})
