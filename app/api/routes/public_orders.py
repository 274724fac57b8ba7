from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from app.core.rate_limit import VERIFY, RateLimit, get_client_ip
from app.db.session import SessionDep
from app.schemas.public import (
    PublicActionResponse,
    PublicOrderOut,
    PublicOrderResponse,
    RespondRequest,
    VerifyRequest,
)
from app.services.public_order_service import (
    ClientInfo,
    load_public_order,
    respond_to_order,
    verify_recipient,
)

router = APIRouter(prefix="/public/orders", tags=["Public"])


def _client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.get("/{token}", response_model=PublicOrderResponse)
def get_public_order(token: str, session: SessionDep) -> PublicOrderResponse:
    """Order as shown to the link holder (no verification code, no owner id)."""
    order = load_public_order(session, token)
    return PublicOrderResponse(order=PublicOrderOut.model_validate(order))


@router.post(
    "/{token}",
    response_model=PublicActionResponse,
    dependencies=[Depends(RateLimit(VERIFY))],
)
def verify_order(
    token: str, payload: VerifyRequest, request: Request, session: SessionDep
) -> PublicActionResponse:
    """Check the last 4 digits of the recipient's phone number.

    Repeated failures from one client trigger a 30-minute block.
    """
    order = verify_recipient(session, token, payload.verification_code, _client_info(request))
    return PublicActionResponse(message="Verification succeeded.", status=order.status)


@router.put("/{token}", response_model=PublicActionResponse)
def respond(
    token: str, payload: RespondRequest, request: Request, session: SessionDep
) -> PublicActionResponse:
    """Accept, reject or put the order under review."""
    order = respond_to_order(
        session, token, payload.response, payload.reason, _client_info(request)
    )
    return PublicActionResponse(message="Response recorded.", status=order.status)
