"""ORM models package export."""

from app.models.account import Account
from app.models.audit_event import AuditEvent
from app.models.catalog import CatalogOption, QuoteLayer
from app.models.customer import Customer
from app.models.location import Location
from app.models.quote import (
    Quote,
    QuoteStatus,
    QuoteStatusEvent,
    SecondPairDiscountType,
    TransitionCategory,
)
from app.models.second_pair import SecondPairRecord
from app.models.user import MANAGER_ROLES, User, UserRole, UserStatus

__all__ = [
    "Account",
    "AuditEvent",
    "CatalogOption",
    "Customer",
    "Location",
    "MANAGER_ROLES",
    "Quote",
    "QuoteLayer",
    "QuoteStatus",
    "QuoteStatusEvent",
    "SecondPairDiscountType",
    "SecondPairRecord",
    "TransitionCategory",
    "User",
    "UserRole",
    "UserStatus",
]
