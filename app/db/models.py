"""SQLAlchemy models for users, orders and the owner's saved records."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, utcnow
from app.domain.order_status import OrderStatus


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(100))
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    business_name: Mapped[Optional[str]] = mapped_column(String(200))

    sessions: Mapped[List["AuthSession"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    orders: Mapped[List["Order"]] = relationship(back_populates="user")


class AuthSession(Base):
    """Login session; only the SHA-256 of the bearer token is stored."""

    __tablename__ = "auth_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    user: Mapped["User"] = relationship(back_populates="sessions")


class Order(TimestampMixin, Base):
    __tablename__ = "orders"
    __table_args__ = (Index("ix_orders_user_status", "user_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    recipient_name: Mapped[str] = mapped_column(String(100), nullable=False)
    recipient_business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    recipient_business_number: Mapped[Optional[str]] = mapped_column(String(32))
    recipient_phone1: Mapped[str] = mapped_column(String(32), nullable=False)
    recipient_phone2: Mapped[Optional[str]] = mapped_column(String(32))
    recipient_address: Mapped[str] = mapped_column(String(500), nullable=False)
    recipient_address_detail: Mapped[Optional[str]] = mapped_column(String(500))

    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_time: Mapped[Optional[str]] = mapped_column(String(50))
    memo: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=16),
        default=OrderStatus.DRAFT,
        nullable=False,
        index=True,
    )

    # Public link; issued once at creation
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    token_expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    verification_code: Mapped[str] = mapped_column(String(4), nullable=False)

    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_viewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    user: Mapped["User"] = relationship(back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.sort_order",
    )
    histories: Mapped[List["OrderHistory"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by=lambda: OrderHistory.created_at.desc(),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_code: Mapped[Optional[str]] = mapped_column(String(64))
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    item_spec: Mapped[Optional[str]] = mapped_column(String(200))
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    order: Mapped["Order"] = relationship(back_populates="items")


class OrderHistory(Base):
    """Append-only status log."""

    __tablename__ = "order_histories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=16), nullable=False
    )
    reason: Mapped[Optional[str]] = mapped_column(Text)
    # owner's user id, or "recipient"
    changed_by: Mapped[str] = mapped_column(String(64), nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(255))
    user_agent: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    order: Mapped["Order"] = relationship(back_populates="histories")


class SavedAddress(TimestampMixin, Base):
    __tablename__ = "saved_addresses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    address_detail: Mapped[Optional[str]] = mapped_column(String(500))
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime)


class SavedDestination(TimestampMixin, Base):
    __tablename__ = "saved_destinations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    business_number: Mapped[Optional[str]] = mapped_column(String(32))
    contact_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone1: Mapped[str] = mapped_column(String(32), nullable=False)
    phone2: Mapped[Optional[str]] = mapped_column(String(32))
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    address_detail: Mapped[Optional[str]] = mapped_column(String(500))
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime)


class RecentItem(Base):
    """Per-user usage counters feeding item auto-suggestion."""

    __tablename__ = "recent_items"
    __table_args__ = (
        UniqueConstraint("user_id", "item_name", "item_spec", name="uq_recent_items_user_item"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_code: Mapped[Optional[str]] = mapped_column(String(64))
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    # "" rather than NULL so the unique constraint applies
    item_spec: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    last_used_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
