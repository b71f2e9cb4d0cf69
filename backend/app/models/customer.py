"""Customer (patient) records with insurance details."""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import Date, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from app.db.base import Base
from app.models.mixins import TimestampMixin
from app.security.encryption import EncryptedStr

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.account import Account
    from app.models.quote import Quote

JSONB_TYPE = JSONB().with_variant(JSON(), "sqlite")


class Customer(TimestampMixin, Base):
    """A patient of the practice."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320))
    phone_number: Mapped[str | None] = mapped_column(String(32))
    date_of_birth: Mapped[datetime.date | None] = mapped_column(Date)

    insurance_carrier: Mapped[str | None] = mapped_column(String(120))
    insurance_member_id: Mapped[str | None] = mapped_column(EncryptedStr(512))
    insurance_group: Mapped[str | None] = mapped_column(String(120))
    # {"copays": {"exam-type": "20.00"}, "allowances": {"lens-type": "100.00"}}
    insurance_benefits: Mapped[dict[str, Any]] = mapped_column(
        JSONB_TYPE, default=dict, nullable=False
    )

    account: Mapped["Account"] = relationship("Account", back_populates="customers")
    quotes: Mapped[list["Quote"]] = relationship("Quote", back_populates="customer")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
