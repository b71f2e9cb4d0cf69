"""Location schemas for CRUD operations."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

TaxRate = Decimal


def _validate_timezone(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone {value!r}") from exc
    return value


class LocationBase(BaseModel):
    """Shared location fields."""

    name: str
    timezone: str = "UTC"
    tax_rate: TaxRate | None = Field(default=None, ge=Decimal("0"), le=Decimal("1"))
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    phone_number: str | None = Field(default=None, max_length=32)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        return _validate_timezone(value) or "UTC"


class LocationCreate(LocationBase):
    """Payload for creating a location."""


class LocationUpdate(BaseModel):
    """Mutable location fields."""

    name: str | None = None
    timezone: str | None = None
    tax_rate: TaxRate | None = Field(default=None, ge=Decimal("0"), le=Decimal("1"))
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    phone_number: str | None = Field(default=None, max_length=32)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str | None) -> str | None:
        return _validate_timezone(value)


class LocationRead(LocationBase):
    """Serialized location response."""

    id: uuid.UUID
    account_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
