"""Customer schemas, including the insurance record."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.security.encryption import mask_identifier


class InsuranceBenefits(BaseModel):
    """Per-category copay overrides and coverage allowances."""

    copays: dict[str, Decimal] = Field(default_factory=dict)
    allowances: dict[str, Decimal] = Field(default_factory=dict)


class CustomerBase(BaseModel):
    """Shared customer fields."""

    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: str | None = Field(default=None, max_length=320)
    phone_number: str | None = Field(default=None, max_length=32)
    date_of_birth: datetime.date | None = None
    insurance_carrier: str | None = Field(default=None, max_length=120)
    insurance_member_id: str | None = Field(default=None, max_length=120)
    insurance_group: str | None = Field(default=None, max_length=120)


class CustomerCreate(CustomerBase):
    """Payload for creating a customer."""

    insurance_benefits: InsuranceBenefits = Field(default_factory=InsuranceBenefits)


class CustomerUpdate(BaseModel):
    """Mutable customer fields."""

    first_name: str | None = Field(default=None, min_length=1, max_length=120)
    last_name: str | None = Field(default=None, min_length=1, max_length=120)
    email: str | None = Field(default=None, max_length=320)
    phone_number: str | None = Field(default=None, max_length=32)
    date_of_birth: datetime.date | None = None
    insurance_carrier: str | None = Field(default=None, max_length=120)
    insurance_member_id: str | None = Field(default=None, max_length=120)
    insurance_group: str | None = Field(default=None, max_length=120)
    insurance_benefits: InsuranceBenefits | None = None


class CustomerRead(CustomerBase):
    """Serialized customer; the member id is masked."""

    id: uuid.UUID
    account_id: uuid.UUID
    insurance_benefits: dict = Field(default_factory=dict)
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("insurance_member_id")
    def _mask_member_id(self, value: str | None) -> str | None:
        return mask_identifier(value)
