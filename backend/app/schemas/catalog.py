"""Price catalog schemas."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.models.catalog import QuoteLayer


class CatalogOptionBase(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=Decimal("0"))
    layer: QuoteLayer
    category: str = Field(min_length=1, max_length=64)
    insurance_covered: bool = False
    copay: Decimal | None = Field(default=None, ge=Decimal("0"))
    duration_minutes: int | None = Field(default=None, ge=0)
    rebate_amount: Decimal | None = Field(default=None, ge=Decimal("0"))
    note: str | None = None


class CatalogOptionCreate(CatalogOptionBase):
    """One option in a catalog publication."""


class CatalogOptionRead(CatalogOptionBase):
    model_config = ConfigDict(from_attributes=True)


class CatalogRead(BaseModel):
    """The catalog currently used for pricing."""

    version: str
    options: list[CatalogOptionRead]


class CatalogPublish(BaseModel):
    """Replace the account's catalog with a new version."""

    options: list[CatalogOptionCreate] = Field(min_length=1)
