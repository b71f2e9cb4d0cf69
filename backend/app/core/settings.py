"""Specialized settings adapters for the pricing engine."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.core.config import get_settings


class PricingSettings(BaseModel):
    """Slim, immutable view of pricing-related configuration."""

    model_config = ConfigDict(frozen=True)

    default_tax_rate: Decimal = Decimal("0.08")
    pof_fixed_fee: Decimal = Decimal("45.00")
    same_day_percent: Decimal = Decimal("50")
    thirty_day_percent: Decimal = Decimal("30")
    window_days: int = 30
    history_depth: int = 5
    manager_override_min_reason: int = 10


class QuoteLifecycleSettings(BaseModel):
    """Expiration windows for draft and presented quotes."""

    model_config = ConfigDict(frozen=True)

    expiration_days: int = 30
    warning_days: int = 3


def get_pricing_settings() -> PricingSettings:
    """Return pricing-specific configuration."""

    settings = get_settings()
    return PricingSettings(
        default_tax_rate=settings.default_tax_rate,
        pof_fixed_fee=settings.pof_fixed_fee,
        same_day_percent=settings.second_pair_same_day_percent,
        thirty_day_percent=settings.second_pair_thirty_day_percent,
        window_days=settings.second_pair_window_days,
        history_depth=settings.second_pair_history_depth,
        manager_override_min_reason=settings.manager_override_min_reason,
    )


def get_lifecycle_settings() -> QuoteLifecycleSettings:
    """Return quote expiration configuration."""

    settings = get_settings()
    return QuoteLifecycleSettings(
        expiration_days=settings.quote_expiration_days,
        warning_days=settings.quote_expiration_warning_days,
    )
