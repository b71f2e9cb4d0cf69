"""Second-pair request and response schemas (camelCase on the wire)."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.quote import SecondPairDiscountType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ManagerOverridePayload(CamelModel):
    discount_percent: Decimal = Field(ge=Decimal("0"), le=Decimal("100"))
    reason: str = Field(max_length=1024)
    override_by: str | None = Field(default=None, max_length=255)


class ApplySecondPairRequest(CamelModel):
    """Apply a second-pair discount to a quote."""

    quote_id: uuid.UUID
    customer_id: uuid.UUID
    location_id: uuid.UUID
    user_id: uuid.UUID | None = None
    manager_override: ManagerOverridePayload | None = None


class EligibilityRead(CamelModel):
    is_eligible: bool
    status: str
    discount_type: SecondPairDiscountType | None = None
    discount_percent: Decimal | None = None
    days_after_original: int | None = None
    original_purchase_date: datetime | None = None
    original_quote_id: uuid.UUID | None = None
    reason: str | None = None


class EligibilityResponse(CamelModel):
    success: bool = True
    eligibility: EligibilityRead


class UpdatedQuoteRead(CamelModel):
    id: uuid.UUID
    original_total: Decimal
    discount_amount: Decimal
    final_total: Decimal
    discount_percent: Decimal


class SecondPairRecordRead(CamelModel):
    id: uuid.UUID
    original_quote_id: uuid.UUID
    second_pair_quote_id: uuid.UUID
    customer_id: uuid.UUID
    location_id: uuid.UUID
    discount_type: SecondPairDiscountType
    discount_percent: Decimal
    discount_amount: Decimal
    original_total: Decimal
    final_total: Decimal
    original_purchase_date: datetime
    second_pair_purchase_date: datetime
    days_after_original: int
    manager_override: bool
    override_reason: str | None = None
    override_by: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ApplySecondPairResponse(CamelModel):
    success: bool = True
    message: str
    eligibility: EligibilityRead
    updated_quote: UpdatedQuoteRead
    second_pair_record: SecondPairRecordRead


class EligibleCustomerRead(CamelModel):
    customer_id: uuid.UUID
    name: str
    email: str | None = None
    original_quote_id: uuid.UUID
    original_purchase_date: datetime
    days_ago: int
    discount_type: SecondPairDiscountType
    discount_percent: Decimal


class EligibleCountRead(CamelModel):
    success: bool = True
    count: int


class EligibleCustomersResponse(CamelModel):
    success: bool = True
    customers: list[EligibleCustomerRead]
    total: int


class SecondPairStatsRead(CamelModel):
    total_second_pairs: int
    same_day_pairs: int
    thirty_day_pairs: int
    manager_overrides: int
    total_discount_amount: Decimal
