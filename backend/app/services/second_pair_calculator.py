"""Second-pair discount rules: eligibility classification and discount math."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.settings import PricingSettings
from app.models import SecondPairDiscountType
from app.services.money import ZERO, to_money

HUNDRED = Decimal("100")


class SecondPairError(ValueError):
    """Raised when a second-pair discount cannot be applied."""


class SecondPairStatus(str, enum.Enum):
    """Eligibility outcome for a customer's next pair."""

    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    ELIGIBLE_SAME_DAY = "ELIGIBLE_SAME_DAY"
    ELIGIBLE_THIRTY_DAY = "ELIGIBLE_THIRTY_DAY"


@dataclass(frozen=True, slots=True)
class SecondPairEligibility:
    """Derived eligibility; recomputed from quote history on every check."""

    status: SecondPairStatus
    discount_type: SecondPairDiscountType | None = None
    discount_percent: Decimal | None = None
    original_quote_id: UUID | None = None
    original_purchase_date: datetime | None = None
    days_after_original: int | None = None
    reason: str | None = None

    @property
    def is_eligible(self) -> bool:
        # A manager override grants the discount regardless of history.
        return (
            self.status is not SecondPairStatus.NOT_ELIGIBLE
            or self.discount_type is SecondPairDiscountType.MANAGER_OVERRIDE
        )


@dataclass(frozen=True, slots=True)
class SecondPairDiscount:
    discount_type: SecondPairDiscountType
    discount_percent: Decimal
    discount_amount: Decimal
    original_total: Decimal
    final_total: Decimal


def classify_days(days: int, settings: PricingSettings) -> SecondPairStatus:
    """Map days since the original purchase to an eligibility status."""

    if days == 0:
        return SecondPairStatus.ELIGIBLE_SAME_DAY
    if 0 < days <= settings.window_days:
        return SecondPairStatus.ELIGIBLE_THIRTY_DAY
    return SecondPairStatus.NOT_ELIGIBLE


def discount_for_status(
    status: SecondPairStatus, settings: PricingSettings
) -> tuple[SecondPairDiscountType, Decimal] | None:
    if status is SecondPairStatus.ELIGIBLE_SAME_DAY:
        return SecondPairDiscountType.SAME_DAY_50, settings.same_day_percent
    if status is SecondPairStatus.ELIGIBLE_THIRTY_DAY:
        return SecondPairDiscountType.THIRTY_DAY_30, settings.thirty_day_percent
    return None


def default_percent(
    discount_type: SecondPairDiscountType, settings: PricingSettings
) -> Decimal | None:
    if discount_type is SecondPairDiscountType.SAME_DAY_50:
        return settings.same_day_percent
    if discount_type is SecondPairDiscountType.THIRTY_DAY_30:
        return settings.thirty_day_percent
    return None


def location_zone(timezone: str | None) -> ZoneInfo:
    """Return the zone for a location, falling back to UTC for unknown names."""

    if not timezone:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):  # pragma: no cover - depends on system tz database
        return ZoneInfo("UTC")


def calendar_days_between(earlier: datetime, later: datetime, zone: ZoneInfo) -> int:
    """Count calendar days between two instants as seen in ``zone``.

    Naive datetimes are treated as UTC.
    """

    def _local_date(value: datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(zone).date()

    return (_local_date(later) - _local_date(earlier)).days


def calculate_second_pair_discount(
    original_total: Decimal | int | float | str,
    discount_type: SecondPairDiscountType,
    discount_percent: Decimal | int | float | str | None = None,
    *,
    settings: PricingSettings | None = None,
) -> SecondPairDiscount:
    """Apply a second-pair discount percentage to a total.

    ``discount_percent`` defaults to the configured rate for the discount
    type; a manager override must supply it. The final total never goes
    below zero.
    """

    percent: Decimal | None
    if discount_percent is not None:
        percent = Decimal(str(discount_percent))
    else:
        percent = default_percent(discount_type, settings or PricingSettings())
    if percent is None:
        raise SecondPairError("Manager override requires a discount percentage")
    if not percent.is_finite() or percent < 0 or percent > HUNDRED:
        raise SecondPairError("Discount percentage must be between 0 and 100")

    total = max(to_money(original_total), ZERO)
    amount = min(to_money(total * percent / HUNDRED), total)
    return SecondPairDiscount(
        discount_type=discount_type,
        discount_percent=percent,
        discount_amount=amount,
        original_total=total,
        final_total=total - amount,
    )


__all__ = [
    "SecondPairDiscount",
    "SecondPairEligibility",
    "SecondPairError",
    "SecondPairStatus",
    "calculate_second_pair_discount",
    "calendar_days_between",
    "classify_days",
    "default_percent",
    "discount_for_status",
    "location_zone",
]
