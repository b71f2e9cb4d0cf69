"""Account model representing a tenant/business entity."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin


if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from app.models.catalog import CatalogOption
    from app.models.customer import Customer
    from app.models.location import Location
    from app.models.user import User


class Account(TimestampMixin, Base):
    """A tenant account (an optical practice or practice group)."""

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    locations: Mapped[list["Location"]] = relationship(
        "Location", back_populates="account", cascade="all, delete-orphan"
    )
    users: Mapped[list["User"]] = relationship(
        "User", back_populates="account", cascade="all, delete-orphan"
    )
    customers: Mapped[list["Customer"]] = relationship(
        "Customer", back_populates="account", cascade="all, delete-orphan"
    )
    catalog_options: Mapped[list["CatalogOption"]] = relationship(
        "CatalogOption", back_populates="account", cascade="all, delete-orphan"
    )
