"""Password hashing and bearer-token authentication.

Design principles:
- Passwords are stored only as salted bcrypt hashes
- Bearer tokens are random secrets; only their SHA-256 is persisted
- Dependency Injection: routes declare ``Depends(get_current_user)``
- Testable: hashing/token helpers are pure functions
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from typing import Annotated

import bcrypt
from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AuthenticationAppError
from app.db.base import utcnow
from app.db.models import AuthSession, User
from app.db.session import SessionDep

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def hash_password(password: str, *, rounds: int | None = None) -> str:
    """Hash a password with a fresh bcrypt salt.

    Args:
        password: Plain-text password.
        rounds: bcrypt cost factor; defaults to ``APP_BCRYPT_ROUNDS``.

    Returns:
        The bcrypt hash as text.
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.app.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash, or a password over bcrypt's 72-byte limit
        return False


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Examples:
        >>> parse_bearer_token("Bearer abc")
        'abc'
        >>> parse_bearer_token("Basic abc") is None
        True
        >>> parse_bearer_token(None) is None
        True
    """
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def resolve_session(session: Session, token: str) -> AuthSession | None:
    """Find a live session for a raw bearer token."""
    auth_session = session.scalar(
        select(AuthSession).where(AuthSession.token_hash == hash_session_token(token))
    )
    if auth_session is None or auth_session.expires_at <= utcnow():
        return None
    return auth_session


def get_current_user(
    session: SessionDep,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """FastAPI dependency returning the authenticated user.

    Raises:
        AuthenticationAppError: 401 if the header is missing, malformed,
            unknown or expired.
    """
    token = parse_bearer_token(authorization)
    if token is None:
        logger.info("auth.missing_token")
        raise AuthenticationAppError(
            code="authentication_required",
            message="Login required.",
            details={"hint": "Send 'Authorization: Bearer <token>' obtained from /v1/auth/login"},
        )

    auth_session = resolve_session(session, token)
    if auth_session is None:
        logger.warning(
            "auth.invalid_token",
            extra={"token_fingerprint": hash_session_token(token)[:16]},
        )
        raise AuthenticationAppError(
            code="authentication_required",
            message="Session is invalid or has expired. Please log in again.",
        )

    return auth_session.user


CurrentUser = Annotated[User, Depends(get_current_user)]
