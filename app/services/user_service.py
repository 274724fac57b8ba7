"""Account signup and login sessions."""

from __future__ import annotations

import logging
import re
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import (
    generate_session_token,
    hash_password,
    hash_session_token,
    verify_password,
)
from app.core.config import settings
from app.core.errors import AuthenticationAppError, ConflictAppError, ValidationAppError
from app.db.base import utcnow
from app.db.models import AuthSession, User
from app.db.session import unit_of_work
from app.schemas.auth import LoginRequest, SignupRequest, TokenResponse

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LENGTH = 8
# bcrypt only accepts the first 72 bytes of a password
PASSWORD_MAX_BYTES = 72
_HAS_LETTER = re.compile(r"[A-Za-z]")
_HAS_DIGIT = re.compile(r"\d")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_signup(payload: SignupRequest) -> str:
    """Check email format and password strength.

    Returns:
        The normalized email.

    Raises:
        ValidationAppError: On the first rule that fails.
    """
    email = normalize_email(payload.email)
    if not EMAIL_PATTERN.match(email):
        raise ValidationAppError(
            code="invalid_email",
            message="Please enter a valid email address.",
            details={"field": "email"},
        )

    password = payload.password
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationAppError(
            code="password_too_short",
            message=f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.",
            details={"field": "password"},
        )
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationAppError(
            code="password_too_long",
            message=f"Password must be at most {PASSWORD_MAX_BYTES} bytes long.",
            details={"field": "password", "max_bytes": PASSWORD_MAX_BYTES},
        )
    if not (_HAS_LETTER.search(password) and _HAS_DIGIT.search(password)):
        raise ValidationAppError(
            code="password_too_weak",
            message="Password must contain both letters and digits.",
            details={"field": "password"},
        )
    return email


def signup(session: Session, payload: SignupRequest) -> User:
    """Create an account after validation and uniqueness checks.

    Raises:
        ValidationAppError: Malformed email or weak password.
        ConflictAppError: Email already registered.
    """
    email = validate_signup(payload)

    if session.scalar(select(User.id).where(User.email == email)) is not None:
        raise ConflictAppError(code="email_taken", message="This email is already in use.")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        phone=payload.phone,
        business_name=payload.business_name,
    )
    try:
        with unit_of_work(session):
            session.add(user)
    except IntegrityError as exc:
        # concurrent signup with the same email
        raise ConflictAppError(code="email_taken", message="This email is already in use.") from exc

    logger.info("user.signed_up", extra={"user_id": str(user.id)})
    return user


def login(session: Session, payload: LoginRequest) -> TokenResponse:
    """Exchange credentials for a bearer token.

    Raises:
        AuthenticationAppError: Unknown email or wrong password (same error
            for both).
    """
    user = session.scalar(select(User).where(User.email == normalize_email(payload.email)))
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.warning("auth.login_failed")
        raise AuthenticationAppError(
            code="invalid_credentials",
            message="Email or password is incorrect.",
        )

    token = generate_session_token()
    now = utcnow()
    auth_session = AuthSession(
        user_id=user.id,
        token_hash=hash_session_token(token),
        expires_at=now + timedelta(hours=settings.app.session_ttl_hours),
    )
    with unit_of_work(session):
        session.add(auth_session)

    logger.info("auth.login_succeeded", extra={"user_id": str(user.id)})
    return TokenResponse(access_token=token, expires_at=auth_session.expires_at)


def logout(session: Session, token: str) -> None:
    """Revoke the session behind a bearer token (no-op if already gone)."""
    auth_session = session.scalar(
        select(AuthSession).where(AuthSession.token_hash == hash_session_token(token))
    )
    if auth_session is None:
        return
    with unit_of_work(session):
        session.delete(auth_session)
    logger.info("auth.logged_out", extra={"user_id": str(auth_session.user_id)})
