"""Money parsing and rounding helpers."""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.services.money import clamp, coerce_amount, coerce_quantity, to_money, to_str


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, Decimal("0.00")),
        ("", Decimal("0.00")),
        ("abc", Decimal("0.00")),
        ("-5", Decimal("0.00")),
        ("NaN", Decimal("0.00")),
        ("$1,234.50", Decimal("1234.50")),
        (19.999, Decimal("20.00")),
        (True, Decimal("0.00")),
    ],
)
def test_coerce_amount_falls_back_to_zero(raw, expected) -> None:
    assert coerce_amount(raw) == expected


def test_to_money_rounds_half_up() -> None:
    assert to_money("2.675") == Decimal("2.68")
    assert to_money(0.1 + 0.2) == Decimal("0.30")
    assert to_str(Decimal("5")) == "5.00"


def test_coerce_quantity_floors_and_rejects_garbage() -> None:
    assert coerce_quantity("2.7") == 2
    assert coerce_quantity("boxes") == 0
    assert coerce_quantity(-3) == 0
    assert coerce_quantity(4) == 4


def test_clamp_inverted_range_returns_lower_bound() -> None:
    assert clamp(Decimal("5"), Decimal("0"), Decimal("-1")) == Decimal("0")
    assert clamp(Decimal("5"), Decimal("0"), Decimal("3")) == Decimal("3")
