"""Quote-level aggregation of layer pricing."""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.models import QuoteLayer, SecondPairDiscountType
from app.services.catalog_service import DEFAULT_CATALOG
from app.services.insurance_service import InsuranceContext
from app.services.pricing_service import ContactsSelection, EyeglassesSelection, LayerPricing
from app.services.quote_service import (
    InsuranceConflictError,
    SecondPairTerms,
    aggregate_quote,
    price_selections,
)

TAX = Decimal("0.08")


def _layer(subtotal: str, insurance: str = "0", discount: str = "0") -> LayerPricing:
    subtotal_d = Decimal(subtotal)
    return LayerPricing(
        layer=QuoteLayer.EYEGLASSES,
        subtotal=subtotal_d,
        insurance_coverage=Decimal(insurance),
        discount=Decimal(discount),
        patient_responsibility=subtotal_d - Decimal(insurance) - Decimal(discount),
    )


def test_tax_is_charged_on_subtotal() -> None:
    totals = aggregate_quote([_layer("100", insurance="20")], tax_rate=TAX)

    assert totals.tax == Decimal("8.00")
    assert totals.insurance_discount == Decimal("20.00")
    assert totals.total == Decimal("88.00")
    assert totals.patient_responsibility == totals.total


def test_discounts_clamp_to_subtotal() -> None:
    totals = aggregate_quote(
        [_layer("100", insurance="30")],
        tax_rate=Decimal("0"),
        manual_discount=Decimal("150"),
    )

    assert totals.discount == Decimal("100.00")
    assert totals.insurance_discount == Decimal("0.00")
    assert totals.total == Decimal("0.00")


def test_second_pair_discount_applies_after_tax() -> None:
    totals = aggregate_quote(
        [_layer("200")],
        tax_rate=Decimal("0"),
        second_pair=SecondPairTerms(SecondPairDiscountType.THIRTY_DAY_30, Decimal("30")),
    )

    assert totals.pre_total == Decimal("200.00")
    assert totals.second_pair_discount == Decimal("60.00")
    assert totals.total == Decimal("140.00")


def test_second_pair_and_insurance_conflict() -> None:
    with pytest.raises(InsuranceConflictError):
        aggregate_quote(
            [_layer("100", insurance="20")],
            tax_rate=TAX,
            second_pair=SecondPairTerms(SecondPairDiscountType.SAME_DAY_50, Decimal("50")),
        )


def test_price_selections_combines_layers() -> None:
    pricing = price_selections(
        catalog=DEFAULT_CATALOG,
        exam_services=["new-patient", "routine-exam", "optomap"],
        eyeglasses=EyeglassesSelection.from_dict(
            {"frame_source": "manual", "frame_price": "100", "lens_type": "single-vision"}
        ),
        contacts=ContactsSelection(),
        insurance=InsuranceContext(carrier="VSP"),
        tax_rate=TAX,
    )

    assert [layer.layer for layer in pricing.layers] == [
        QuoteLayer.EXAM,
        QuoteLayer.EYEGLASSES,
    ]
    totals = pricing.totals
    assert totals.subtotal == Decimal("375.00")
    assert totals.insurance_discount == Decimal("205.00")
    assert totals.tax == Decimal("30.00")
    assert totals.total == Decimal("200.00")
    assert pricing.exam_errors == []
    assert pricing.catalog_version == DEFAULT_CATALOG.version


def test_price_selections_is_deterministic() -> None:
    kwargs = dict(
        catalog=DEFAULT_CATALOG,
        exam_services=["established-patient", "medical-exam"],
        eyeglasses=EyeglassesSelection(),
        contacts=ContactsSelection.from_dict({"price_per_box": "40", "number_of_boxes": 2}),
        insurance=None,
        tax_rate=TAX,
    )
    assert price_selections(**kwargs).to_dict() == price_selections(**kwargs).to_dict()
