"""Insurance coverage resolution."""

from __future__ import annotations

from decimal import Decimal

from app.models import QuoteLayer
from app.services.catalog_service import DEFAULT_CATALOG, PricedOption
from app.services.insurance_service import InsuranceContext, resolve_layer, resolve_option


def _option(price: str, *, covered: bool = True, copay: str | None = None, category: str = "exam-type") -> PricedOption:
    return PricedOption(
        code=f"opt-{price}",
        name="Option",
        price=Decimal(price),
        layer=QuoteLayer.EXAM,
        category=category,
        insurance_covered=covered,
        copay=Decimal(copay) if copay is not None else None,
    )


def test_covered_option_splits_on_copay() -> None:
    routine = DEFAULT_CATALOG.get(QuoteLayer.EXAM, "routine-exam")
    assert routine is not None

    coverage = resolve_option(routine)

    assert coverage.patient_pays == Decimal("25.00")
    assert coverage.insurance_covers == Decimal("125.00")


def test_uncovered_option_is_paid_in_full() -> None:
    coverage = resolve_option(_option("45", covered=False))
    assert coverage.patient_pays == Decimal("45.00")
    assert coverage.insurance_covers == Decimal("0.00")


def test_copay_above_price_is_clamped() -> None:
    coverage = resolve_option(_option("150", copay="25"), copay_override=Decimal("200"))
    assert coverage.patient_pays == Decimal("150.00")
    assert coverage.insurance_covers == Decimal("0.00")


def test_layer_without_insurance_covers_nothing() -> None:
    result = resolve_layer([_option("150", copay="25"), _option("45")], None)
    assert result.insurance_covers == Decimal("0.00")
    assert result.patient_pays == Decimal("195.00")


def test_allowance_caps_category_coverage() -> None:
    insurance = InsuranceContext(
        carrier="VSP", allowances={"lens-type": Decimal("100")}
    )
    lenses = [
        _option("80", category="lens-type"),
        _option("60", category="lens-type"),
    ]

    result = resolve_layer(lenses, insurance)

    assert [item.coverage.insurance_covers for item in result.items] == [
        Decimal("80.00"),
        Decimal("20.00"),
    ]
    assert result.insurance_covers == Decimal("100.00")
    assert result.patient_pays == Decimal("40.00")


def test_category_copay_override_applies() -> None:
    insurance = InsuranceContext.from_benefits(
        "EyeMed", "M-1", {"copays": {"exam-type": "10"}}
    )
    assert insurance is not None

    result = resolve_layer([_option("150", copay="25")], insurance)

    assert result.patient_pays == Decimal("10.00")
    assert result.insurance_covers == Decimal("140.00")


def test_from_benefits_without_carrier_is_cash() -> None:
    assert InsuranceContext.from_benefits(None) is None
    assert InsuranceContext.from_benefits("   ") is None
