"""Versioned API router."""

from fastapi import APIRouter

from . import (
    auth,
    catalog,
    customers,
    health,
    locations,
    pricing,
    quotes,
    second_pair,
    users,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(locations.router, prefix="/locations", tags=["locations"])
router.include_router(customers.router, prefix="/customers", tags=["customers"])
router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
router.include_router(pricing.router)
# Registered before the quote routes so "apply-second-pair" is not read as an id.
router.include_router(second_pair.router)
router.include_router(quotes.router)

__all__ = ["router"]
