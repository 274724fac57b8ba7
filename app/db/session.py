"""Engine, session factory and transaction scope.

Routes receive a ``Session`` through the :func:`get_session` dependency;
services group every multi-step mutation in :func:`unit_of_work` so a
failure partway leaves the previous state untouched.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Annotated, Iterator

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.db.base import Base

logger = logging.getLogger(__name__)


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine, adjusting pool/connect args for SQLite.

    An in-memory SQLite database is shared through a single static
    connection so every session sees the same tables.
    """

    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if parsed.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


engine = build_engine(settings.db.url, echo=settings.db.echo)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db() -> None:
    """Create missing tables."""
    from app.db import models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind=engine)
    logger.info("db.initialized", extra={"backend": engine.url.get_backend_name()})


def get_session() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped session."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


SessionDep = Annotated[Session, Depends(get_session)]


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back.

    Usage:
        with unit_of_work(session):
            session.add(order)
            session.add(history)
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
