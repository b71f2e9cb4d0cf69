"""Location administration API endpoints."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import IntegrityError

from app.api.deps import CurrentUser, ManagerUser, SessionDep
from app.schemas.location import LocationCreate, LocationRead, LocationUpdate
from app.services import location_service

router = APIRouter()


@router.get("", response_model=list[LocationRead], summary="List locations")
async def list_locations(
    session: SessionDep,
    current_user: CurrentUser,
    skip: int = 0,
    limit: int = 50,
) -> list[LocationRead]:
    locations = await location_service.list_locations(
        session,
        account_id=current_user.account_id,
        skip=skip,
        limit=limit,
    )
    return [LocationRead.model_validate(obj) for obj in locations]


@router.post(
    "",
    response_model=LocationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create location",
)
async def create_location(
    payload: LocationCreate,
    session: SessionDep,
    current_user: ManagerUser,
) -> LocationRead:
    try:
        location = await location_service.create_location(
            session, account_id=current_user.account_id, payload=payload
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Location already exists"
        ) from exc
    return LocationRead.model_validate(location)


@router.get("/{location_id}", response_model=LocationRead, summary="Get location")
async def read_location(
    location_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
) -> LocationRead:
    location = await location_service.get_location(
        session, location_id=location_id, account_id=current_user.account_id
    )
    if location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    return LocationRead.model_validate(location)


@router.patch("/{location_id}", response_model=LocationRead, summary="Update location")
async def update_location(
    location_id: uuid.UUID,
    payload: LocationUpdate,
    session: SessionDep,
    current_user: ManagerUser,
) -> LocationRead:
    location = await location_service.get_location(
        session, location_id=location_id, account_id=current_user.account_id
    )
    if location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    updated = await location_service.update_location(session, location, payload)
    return LocationRead.model_validate(updated)
