from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from app.core.auth import CurrentUser
from app.core.rate_limit import API, RateLimit
from app.db.session import SessionDep
from app.schemas.addresses import (
    AddressIn,
    AddressListResponse,
    AddressOut,
    AddressResponse,
    DestinationIn,
    DestinationListResponse,
    DestinationOut,
    DestinationResponse,
)
from app.schemas.common import MessageResponse
from app.services import address_service, destination_service

router = APIRouter(tags=["Addresses"], dependencies=[Depends(RateLimit(API))])


@router.get("/addresses", response_model=AddressListResponse)
def list_addresses(
    user: CurrentUser, session: SessionDep, search: str | None = Query(None, max_length=100)
) -> AddressListResponse:
    """Saved addresses: default first, then by usage."""
    addresses = address_service.list_addresses(session, user, search)
    return AddressListResponse(addresses=[AddressOut.model_validate(a) for a in addresses])


@router.post("/addresses", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
def create_address(payload: AddressIn, user: CurrentUser, session: SessionDep) -> AddressResponse:
    address = address_service.create_address(session, user, payload)
    return AddressResponse(message="Address saved.", address=AddressOut.model_validate(address))


@router.get("/addresses/{address_id}", response_model=AddressResponse)
def get_address(address_id: uuid.UUID, user: CurrentUser, session: SessionDep) -> AddressResponse:
    address = address_service.get_address(session, user, address_id)
    return AddressResponse(address=AddressOut.model_validate(address))


@router.put("/addresses/{address_id}", response_model=AddressResponse)
def update_address(
    address_id: uuid.UUID, payload: AddressIn, user: CurrentUser, session: SessionDep
) -> AddressResponse:
    address = address_service.update_address(session, user, address_id, payload)
    return AddressResponse(message="Address updated.", address=AddressOut.model_validate(address))


@router.delete("/addresses/{address_id}", response_model=MessageResponse)
def delete_address(address_id: uuid.UUID, user: CurrentUser, session: SessionDep) -> MessageResponse:
    address_service.delete_address(session, user, address_id)
    return MessageResponse(message="Address deleted.")


@router.get("/destinations", response_model=DestinationListResponse)
def list_destinations(
    user: CurrentUser, session: SessionDep, search: str | None = Query(None, max_length=100)
) -> DestinationListResponse:
    """Saved destinations, searchable by business name, contact or nickname."""
    destinations = destination_service.list_destinations(session, user, search)
    return DestinationListResponse(
        destinations=[DestinationOut.model_validate(d) for d in destinations]
    )


@router.post(
    "/destinations", response_model=DestinationResponse, status_code=status.HTTP_201_CREATED
)
def create_destination(
    payload: DestinationIn, user: CurrentUser, session: SessionDep
) -> DestinationResponse:
    destination = destination_service.create_destination(session, user, payload)
    return DestinationResponse(
        message="Destination saved.", destination=DestinationOut.model_validate(destination)
    )


@router.get("/destinations/{destination_id}", response_model=DestinationResponse)
def get_destination(
    destination_id: uuid.UUID, user: CurrentUser, session: SessionDep
) -> DestinationResponse:
    destination = destination_service.get_destination(session, user, destination_id)
    return DestinationResponse(destination=DestinationOut.model_validate(destination))


@router.put("/destinations/{destination_id}", response_model=DestinationResponse)
def update_destination(
    destination_id: uuid.UUID, payload: DestinationIn, user: CurrentUser, session: SessionDep
) -> DestinationResponse:
    destination = destination_service.update_destination(session, user, destination_id, payload)
    return DestinationResponse(
        message="Destination updated.", destination=DestinationOut.model_validate(destination)
    )


@router.delete("/destinations/{destination_id}", response_model=MessageResponse)
def delete_destination(
    destination_id: uuid.UUID, user: CurrentUser, session: SessionDep
) -> MessageResponse:
    destination_service.delete_destination(session, user, destination_id)
    return MessageResponse(message="Destination deleted.")
