"""Second-pair discount math and eligibility windows."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from app.core.settings import PricingSettings
from app.models import SecondPairDiscountType
from app.services.second_pair_calculator import (
    SecondPairError,
    SecondPairStatus,
    calculate_second_pair_discount,
    calendar_days_between,
    classify_days,
    location_zone,
)

SETTINGS = PricingSettings()


def test_same_day_discount_halves_total() -> None:
    result = calculate_second_pair_discount(100, SecondPairDiscountType.SAME_DAY_50)

    assert result.discount_percent == Decimal("50")
    assert result.discount_amount == Decimal("50.00")
    assert result.final_total == Decimal("50.00")


def test_thirty_day_discount() -> None:
    result = calculate_second_pair_discount(
        "200", SecondPairDiscountType.THIRTY_DAY_30, 30
    )

    assert result.original_total == Decimal("200.00")
    assert result.discount_amount == Decimal("60.00")
    assert result.final_total == Decimal("140.00")


def test_manager_override_requires_percentage() -> None:
    with pytest.raises(SecondPairError):
        calculate_second_pair_discount(100, SecondPairDiscountType.MANAGER_OVERRIDE)

    result = calculate_second_pair_discount(
        "80.00", SecondPairDiscountType.MANAGER_OVERRIDE, "12.5"
    )
    assert result.discount_amount == Decimal("10.00")


@pytest.mark.parametrize("percent", ["-1", "150", "NaN"])
def test_out_of_range_percentage_rejected(percent: str) -> None:
    with pytest.raises(SecondPairError):
        calculate_second_pair_discount(
            100, SecondPairDiscountType.MANAGER_OVERRIDE, percent
        )


def test_negative_total_treated_as_zero() -> None:
    result = calculate_second_pair_discount(-20, SecondPairDiscountType.SAME_DAY_50)
    assert result.discount_amount == Decimal("0.00")
    assert result.final_total == Decimal("0.00")


@pytest.mark.parametrize(
    ("days", "status"),
    [
        (0, SecondPairStatus.ELIGIBLE_SAME_DAY),
        (1, SecondPairStatus.ELIGIBLE_THIRTY_DAY),
        (15, SecondPairStatus.ELIGIBLE_THIRTY_DAY),
        (30, SecondPairStatus.ELIGIBLE_THIRTY_DAY),
        (31, SecondPairStatus.NOT_ELIGIBLE),
        (45, SecondPairStatus.NOT_ELIGIBLE),
        (-1, SecondPairStatus.NOT_ELIGIBLE),
    ],
)
def test_classify_days(days: int, status: SecondPairStatus) -> None:
    assert classify_days(days, SETTINGS) is status


def test_calendar_days_follow_location_timezone() -> None:
    earlier = datetime(2026, 1, 1, 23, 30, tzinfo=UTC)
    later = datetime(2026, 1, 2, 0, 30, tzinfo=UTC)

    assert calendar_days_between(earlier, later, location_zone("UTC")) == 1
    assert calendar_days_between(earlier, later, location_zone("America/Chicago")) == 0


def test_naive_datetimes_are_utc() -> None:
    earlier = datetime(2026, 3, 1, 12, 0)
    later = datetime(2026, 3, 16, 12, 0, tzinfo=UTC)

    assert calendar_days_between(earlier, later, location_zone(None)) == 15
