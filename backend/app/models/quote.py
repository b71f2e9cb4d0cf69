"""Quote models: priced selections and their lifecycle history."""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from app.db.base import Base
from app.models.mixins import TimestampMixin
from app.security.encryption import EncryptedStr

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from app.models.customer import Customer
    from app.models.location import Location
    from app.models.user import User

JSONB_TYPE = JSONB().with_variant(JSON(), "sqlite")


class QuoteStatus(str, enum.Enum):
    """Quote lifecycle states."""

    BUILDING = "building"
    DRAFT = "draft"
    PRESENTED = "presented"
    SIGNED = "signed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class TransitionCategory(str, enum.Enum):
    """Origin of a status transition."""

    USER_ACTION = "user_action"
    SYSTEM_ACTION = "system_action"
    BUSINESS_RULE = "business_rule"


class SecondPairDiscountType(str, enum.Enum):
    """Second-pair discount programs."""

    SAME_DAY_50 = "SAME_DAY_50"
    THIRTY_DAY_30 = "THIRTY_DAY_30"
    MANAGER_OVERRIDE = "MANAGER_OVERRIDE"


def _money_column() -> Mapped[Decimal]:
    return mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)


class Quote(TimestampMixin, Base):
    """A priced quote built for a customer at a location."""

    __tablename__ = "quotes"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    status: Mapped[QuoteStatus] = mapped_column(
        Enum(QuoteStatus), default=QuoteStatus.BUILDING, nullable=False, index=True
    )
    revision: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    catalog_version: Mapped[str] = mapped_column(String(64), nullable=False)

    # Every UPDATE bumps ``revision``; a concurrent writer gets StaleDataError.
    __mapper_args__ = {"version_id_col": revision}

    exam_services: Mapped[list[str]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    eyeglasses: Mapped[dict[str, Any]] = mapped_column(
        JSONB_TYPE, default=dict, nullable=False
    )
    contacts: Mapped[dict[str, Any]] = mapped_column(
        JSONB_TYPE, default=dict, nullable=False
    )
    pricing_breakdown: Mapped[dict[str, Any]] = mapped_column(
        JSONB_TYPE, default=dict, nullable=False
    )

    insurance_carrier: Mapped[str | None] = mapped_column(String(120))
    insurance_member_id: Mapped[str | None] = mapped_column(EncryptedStr(512))
    insurance_benefits: Mapped[dict[str, Any]] = mapped_column(
        JSONB_TYPE, default=dict, nullable=False
    )

    subtotal: Mapped[Decimal] = _money_column()
    discount: Mapped[Decimal] = _money_column()
    second_pair_discount: Mapped[Decimal] = _money_column()
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4), default=Decimal("0"), nullable=False
    )
    tax: Mapped[Decimal] = _money_column()
    insurance_discount: Mapped[Decimal] = _money_column()
    total: Mapped[Decimal] = _money_column()
    patient_responsibility: Mapped[Decimal] = _money_column()
    manual_discount: Mapped[Decimal] = _money_column()

    is_second_pair: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    second_pair_type: Mapped[SecondPairDiscountType | None] = mapped_column(
        Enum(SecondPairDiscountType)
    )
    second_pair_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    is_patient_owned_frame: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    last_activity_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=sa.func.now(),
    )
    presented_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), index=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    customer: Mapped["Customer"] = relationship("Customer", back_populates="quotes")
    location: Mapped["Location"] = relationship("Location", back_populates="quotes")
    created_by: Mapped["User | None"] = relationship("User")
    status_events: Mapped[list["QuoteStatusEvent"]] = relationship(
        "QuoteStatusEvent",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteStatusEvent.created_at",
    )


class QuoteStatusEvent(Base):
    """Immutable record of a quote status transition."""

    __tablename__ = "quote_status_events"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    quote_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status: Mapped[QuoteStatus | None] = mapped_column(Enum(QuoteStatus))
    to_status: Mapped[QuoteStatus] = mapped_column(Enum(QuoteStatus), nullable=False)
    category: Mapped[TransitionCategory] = mapped_column(
        Enum(TransitionCategory), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(String(1024))
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=sa.func.now(),
    )

    quote: Mapped["Quote"] = relationship("Quote", back_populates="status_events")
