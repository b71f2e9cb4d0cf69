"""Per-account catalog of priced options."""

from __future__ import annotations

import enum
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from app.models.account import Account


class QuoteLayer(str, enum.Enum):
    """Quote-builder layers a catalog option belongs to."""

    EXAM = "exam"
    EYEGLASSES = "eyeglasses"
    CONTACTS = "contacts"


class CatalogOption(TimestampMixin, Base):
    """A priced option (service, lens, coating, brand) in an account catalog."""

    __tablename__ = "catalog_options"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "catalog_version", "layer", "code",
            name="uq_catalog_option_code",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    catalog_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    layer: Mapped[QuoteLayer] = mapped_column(Enum(QuoteLayer), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    insurance_covered: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    copay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    duration_minutes: Mapped[int | None] = mapped_column(Integer)
    rebate_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    note: Mapped[str | None] = mapped_column(String(255))
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    account: Mapped["Account"] = relationship(
        "Account", back_populates="catalog_options"
    )
