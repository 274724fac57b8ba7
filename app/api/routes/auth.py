from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, status

from app.core.auth import CurrentUser, parse_bearer_token
from app.core.rate_limit import API, AUTH, SIGNUP, RateLimit
from app.db.session import SessionDep
from app.schemas.auth import LoginRequest, SignupRequest, SignupResponse, TokenResponse, UserOut
from app.schemas.common import MessageResponse
from app.services import user_service

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit(SIGNUP))],
)
def signup(payload: SignupRequest, session: SessionDep) -> SignupResponse:
    """Register a supplier account.

    Email must look like ``name@domain.tld``; the password needs at least
    8 characters with both letters and digits.
    """
    user = user_service.signup(session, payload)
    return SignupResponse(message="Signup completed.", user=UserOut.model_validate(user))


@router.post("/login", response_model=TokenResponse, dependencies=[Depends(RateLimit(AUTH))])
def login(payload: LoginRequest, session: SessionDep) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    return user_service.login(session, payload)


@router.post("/logout", response_model=MessageResponse, dependencies=[Depends(RateLimit(API))])
def logout(
    user: CurrentUser,
    session: SessionDep,
    authorization: Annotated[str | None, Header()] = None,
) -> MessageResponse:
    token = parse_bearer_token(authorization)
    if token:
        user_service.logout(session, token)
    return MessageResponse(message="Logged out.")


@router.get("/me", response_model=UserOut, dependencies=[Depends(RateLimit(API))])
def me(user: CurrentUser) -> UserOut:
    return UserOut.model_validate(user)
