"""Second-pair discount tracking records."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin
from app.models.quote import SecondPairDiscountType

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from app.models.quote import Quote


class SecondPairRecord(TimestampMixin, Base):
    """One applied second-pair discount, linked to the purchase it follows."""

    __tablename__ = "second_pairs"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # One second pair per original purchase.
    original_quote_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    second_pair_quote_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    discount_type: Mapped[SecondPairDiscountType] = mapped_column(
        Enum(SecondPairDiscountType), nullable=False
    )
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    original_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    final_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    original_purchase_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    second_pair_purchase_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    days_after_original: Mapped[int] = mapped_column(Integer, nullable=False)
    manager_override: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    override_reason: Mapped[str | None] = mapped_column(String(1024))
    override_by: Mapped[str | None] = mapped_column(String(255))

    original_quote: Mapped["Quote"] = relationship(
        "Quote", foreign_keys=[original_quote_id]
    )
    second_pair_quote: Mapped["Quote"] = relationship(
        "Quote", foreign_keys=[second_pair_quote_id]
    )
