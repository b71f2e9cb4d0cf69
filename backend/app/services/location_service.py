"""Location management services."""

from __future__ import annotations

import uuid

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.location import Location
from app.schemas.location import LocationCreate, LocationUpdate


async def list_locations(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    skip: int = 0,
    limit: int = 50,
) -> list[Location]:
    """Return the account's locations."""
    stmt: Select[tuple[Location]] = select(Location).where(
        Location.account_id == account_id
    )
    stmt = stmt.offset(skip).limit(min(limit, 100)).order_by(Location.name)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_location(
    session: AsyncSession,
    *,
    location_id: uuid.UUID,
    account_id: uuid.UUID,
) -> Location | None:
    """Fetch a location owned by the account."""
    location = await session.get(Location, location_id)
    if location is None or location.account_id != account_id:
        return None
    return location


async def create_location(
    session: AsyncSession, *, account_id: uuid.UUID, payload: LocationCreate
) -> Location:
    """Create a new location."""
    location = Location(account_id=account_id, **payload.model_dump())
    session.add(location)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(location)
    return location


async def update_location(
    session: AsyncSession,
    location: Location,
    payload: LocationUpdate,
) -> Location:
    """Update mutable fields on a location (tax rate changes affect new pricing only)."""
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(location, field, value)
    await session.commit()
    await session.refresh(location)
    return location
