"""Saved delivery addresses of an owner."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, nulls_last, or_, select, update
from sqlalchemy.orm import Session

from app.core.errors import NotFoundAppError
from app.db.models import SavedAddress, User
from app.db.session import unit_of_work
from app.schemas.addresses import AddressIn

logger = logging.getLogger(__name__)


def _get_owned(session: Session, owner: User, address_id: uuid.UUID) -> SavedAddress:
    address = session.scalar(
        select(SavedAddress).where(SavedAddress.id == address_id, SavedAddress.user_id == owner.id)
    )
    if address is None:
        raise NotFoundAppError(code="address_not_found", message="Address not found.")
    return address


def _clear_default(session: Session, owner: User, keep_id: uuid.UUID | None = None) -> None:
    stmt = update(SavedAddress).where(
        SavedAddress.user_id == owner.id, SavedAddress.is_default.is_(True)
    )
    if keep_id is not None:
        stmt = stmt.where(SavedAddress.id != keep_id)
    session.execute(stmt.values(is_default=False))


def list_addresses(session: Session, owner: User, search: str | None = None) -> list[SavedAddress]:
    """Default first, then most used, then most recently used."""
    query = select(SavedAddress).where(SavedAddress.user_id == owner.id)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(SavedAddress.nickname).like(pattern),
                func.lower(SavedAddress.address).like(pattern),
            )
        )
    query = query.order_by(
        SavedAddress.is_default.desc(),
        SavedAddress.usage_count.desc(),
        nulls_last(SavedAddress.last_used_at.desc()),
        SavedAddress.created_at.desc(),
    )
    return list(session.scalars(query).all())


def get_address(session: Session, owner: User, address_id: uuid.UUID) -> SavedAddress:
    return _get_owned(session, owner, address_id)


def create_address(session: Session, owner: User, payload: AddressIn) -> SavedAddress:
    address = SavedAddress(user_id=owner.id, **payload.model_dump())
    with unit_of_work(session):
        if payload.is_default:
            _clear_default(session, owner)
        session.add(address)
    logger.info(
        "address.created",
        extra={"address_id": str(address.id), "is_default": address.is_default},
    )
    return address


def update_address(
    session: Session, owner: User, address_id: uuid.UUID, payload: AddressIn
) -> SavedAddress:
    address = _get_owned(session, owner, address_id)
    with unit_of_work(session):
        if payload.is_default:
            _clear_default(session, owner, keep_id=address.id)
        for name, value in payload.model_dump().items():
            setattr(address, name, value)
    logger.info("address.updated", extra={"address_id": str(address.id)})
    return address


def delete_address(session: Session, owner: User, address_id: uuid.UUID) -> None:
    address = _get_owned(session, owner, address_id)
    with unit_of_work(session):
        session.delete(address)
    logger.info("address.deleted", extra={"address_id": str(address_id)})
