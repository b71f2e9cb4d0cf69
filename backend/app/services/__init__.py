"""Service layer exports."""
from app.services import (
    audit_service,
    auth_service,
    catalog_service,
    customer_service,
    location_service,
    quote_service,
    second_pair_service,
    user_service,
)

__all__ = [
    "audit_service",
    "auth_service",
    "catalog_service",
    "customer_service",
    "location_service",
    "quote_service",
    "second_pair_service",
    "user_service",
]
