"""Quote schemas: selections, pricing results and lifecycle."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.models.quote import QuoteStatus, SecondPairDiscountType, TransitionCategory

ManualValue = str | int | float | Decimal | None


class EyeglassesSelectionPayload(BaseModel):
    """Frame and lens choices for the eyeglasses layer."""

    frame_source: Literal["brand", "manual", "free_add", "pof"] | None = None
    frame_brand: str | None = None
    frame_model: str | None = None
    frame_price: ManualValue = None
    frame_style: str | None = None
    lens_type: str | None = None
    lens_material: str | None = None
    ar_coating: str | None = None
    transitions: str | None = None
    polarized: str | None = None
    addons: list[str] = Field(default_factory=list)


class ContactsSelectionPayload(BaseModel):
    """Contact lens choices plus the manual calculator entries.

    Manual entries accept any scalar; values that do not parse count as zero.
    """

    brand: str | None = None
    lens_type: str | None = None
    specialties: list[str] = Field(default_factory=list)
    price_per_box: ManualValue = None
    number_of_boxes: ManualValue = None
    additional_savings: ManualValue = None
    insurance_benefit: ManualValue = None
    manufacturer_rebate: ManualValue = None


class QuoteSelections(BaseModel):
    """Selections for every layer of a quote."""

    exam_services: list[str] = Field(default_factory=list)
    eyeglasses: EyeglassesSelectionPayload | None = None
    contacts: ContactsSelectionPayload | None = None
    manual_discount: ManualValue = None


class QuoteCreate(QuoteSelections):
    """Payload to start a quote for a customer at a location."""

    customer_id: uuid.UUID
    location_id: uuid.UUID
    use_insurance: bool = True


class QuoteSelectionsUpdate(BaseModel):
    """Partial update of quote selections (auto-save)."""

    exam_services: list[str] | None = None
    eyeglasses: EyeglassesSelectionPayload | None = None
    contacts: ContactsSelectionPayload | None = None
    manual_discount: ManualValue = None
    use_insurance: bool | None = None
    expected_revision: int | None = Field(default=None, ge=1)


class PricingPreviewRequest(QuoteSelections):
    """Stateless pricing request."""

    location_id: uuid.UUID | None = None
    customer_id: uuid.UUID | None = None
    tax_rate: Decimal | None = Field(default=None, ge=Decimal("0"), le=Decimal("1"))


class PricingLineRead(BaseModel):
    code: str
    description: str
    category: str
    amount: Decimal
    insurance_covers: Decimal


class LayerPricingRead(BaseModel):
    layer: str
    subtotal: Decimal
    insurance_coverage: Decimal
    discount: Decimal
    patient_responsibility: Decimal
    items: list[PricingLineRead] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)


class QuoteTotalsRead(BaseModel):
    subtotal: Decimal
    discount: Decimal
    insurance_discount: Decimal
    tax_rate: Decimal
    tax: Decimal
    second_pair_discount: Decimal
    total: Decimal
    patient_responsibility: Decimal


class PricingPreviewRead(BaseModel):
    """Result of pricing a set of selections."""

    catalog_version: str
    layers: list[LayerPricingRead]
    totals: QuoteTotalsRead
    is_patient_owned_frame: bool
    exam_errors: list[str] = Field(default_factory=list)
    exam_warnings: list[str] = Field(default_factory=list)


class QuoteRead(BaseModel):
    """Serialized quote."""

    id: uuid.UUID
    account_id: uuid.UUID
    location_id: uuid.UUID
    customer_id: uuid.UUID
    created_by_id: uuid.UUID | None = None
    status: QuoteStatus
    revision: int
    catalog_version: str
    exam_services: list[str]
    eyeglasses: dict[str, Any]
    contacts: dict[str, Any]
    pricing_breakdown: dict[str, Any]
    insurance_carrier: str | None = None
    subtotal: Decimal
    discount: Decimal
    manual_discount: Decimal
    second_pair_discount: Decimal
    tax_rate: Decimal
    tax: Decimal
    insurance_discount: Decimal
    total: Decimal
    patient_responsibility: Decimal
    is_second_pair: bool
    second_pair_type: SecondPairDiscountType | None = None
    second_pair_percent: Decimal | None = None
    is_patient_owned_frame: bool
    last_activity_at: datetime
    presented_at: datetime | None = None
    signed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    expired_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuoteStatusChange(BaseModel):
    """Request a lifecycle transition."""

    status: QuoteStatus
    reason: str | None = Field(default=None, max_length=1024)


class QuoteStatusEventRead(BaseModel):
    id: uuid.UUID
    quote_id: uuid.UUID
    from_status: QuoteStatus | None = None
    to_status: QuoteStatus
    category: TransitionCategory
    reason: str | None = None
    user_id: uuid.UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuoteHistoryRead(BaseModel):
    quote_id: uuid.UUID
    status: QuoteStatus
    next_statuses: list[QuoteStatus]
    events: list[QuoteStatusEventRead]
