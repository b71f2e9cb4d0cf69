"""Line-item pricing for the exam, eyeglasses and contacts layers."""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.services.catalog_service import DEFAULT_CATALOG
from app.services.insurance_service import InsuranceContext
from app.services.pricing_service import (
    ContactsSelection,
    EyeglassesSelection,
    calculate_contact_pricing,
    normalize_exam_selection,
    price_contacts_layer,
    price_exam_layer,
    price_eyeglasses_layer,
    validate_exam_selection,
)

POF_FEE = Decimal("45.00")


def test_contact_calculator_applies_reductions_in_order() -> None:
    result = calculate_contact_pricing("50", "4", "20", "30", "40")

    assert result.total_cost == Decimal("200.00")
    assert result.in_office_total == Decimal("150.00")
    assert result.after_rebate_total == Decimal("110.00")
    assert result.final_cost_per_box == Decimal("27.50")


def test_contact_calculator_treats_garbage_as_zero() -> None:
    result = calculate_contact_pricing("abc", "4", "x", None, "")

    assert result.total_cost == Decimal("0.00")
    assert result.after_rebate_total == Decimal("0.00")
    assert result.final_cost_per_box == Decimal("0.00")


@pytest.mark.parametrize(
    ("args", "after_rebate"),
    [
        (("10", "2", "100", "50", "10"), Decimal("0.00")),
        (("25", "0", "5", "5", "5"), Decimal("0.00")),
        (("30", "3", "0", "100", "0"), Decimal("0.00")),
        (("30", "3", "-10", "10", "500"), Decimal("0.00")),
    ],
)
def test_contact_calculator_never_goes_negative(args, after_rebate) -> None:
    result = calculate_contact_pricing(*args)

    assert result.after_rebate_total == after_rebate
    assert result.additional_savings + result.insurance_benefit <= result.total_cost
    assert result.final_cost_per_box >= 0


@pytest.mark.parametrize(
    "args",
    [
        ("33.33", "3", "10", "0", "0"),
        ("24.99", "7", "12.50", "35", "20"),
        ("41.17", "12", "0", "100", "75"),
        ("19.95", "6", "1", "2", "3"),
    ],
)
def test_contact_per_box_cost_matches_after_rebate_total(args) -> None:
    result = calculate_contact_pricing(*args)
    boxes = result.number_of_boxes

    drift = abs(result.final_cost_per_box * boxes - result.after_rebate_total)
    assert drift <= boxes * Decimal("0.005")

def test_exam_layer_with_insurance() -> None:
    insurance = InsuranceContext(carrier="VSP")

    layer = price_exam_layer(["routine-exam", "optomap"], DEFAULT_CATALOG, insurance)

    assert layer.subtotal == Decimal("195.00")
    assert layer.insurance_coverage == Decimal("125.00")
    assert layer.patient_responsibility == Decimal("70.00")
    assert layer.details["total_duration_minutes"] == 75


def test_exam_layer_ignores_unknown_codes() -> None:
    layer = price_exam_layer(["iwellness", "not-a-service"], DEFAULT_CATALOG)

    assert layer.subtotal == Decimal("39.00")
    assert [item.code for item in layer.items] == ["iwellness"]


def test_normalize_exam_selection_keeps_last_exclusive_choice() -> None:
    codes = normalize_exam_selection(
        ["new-patient", "routine-exam", "medical-exam", "bogus", "optomap", "optomap"],
        DEFAULT_CATALOG,
    )
    assert codes == ["new-patient", "medical-exam", "optomap"]


def test_validate_exam_selection_requires_patient_and_exam_type() -> None:
    result = validate_exam_selection(["optomap"], DEFAULT_CATALOG)

    assert "Patient type is required" in result.errors
    assert "Exam type is required" in result.errors
    assert not result.is_valid


def test_validate_exam_selection_warns_on_long_visits() -> None:
    result = validate_exam_selection(
        ["established-patient", "routine-exam", "visual-field", "neurological-screening"],
        DEFAULT_CATALOG,
    )

    assert result.is_valid
    assert result.total_duration_minutes == 135
    assert len(result.warnings) == 1


def test_eyeglasses_layer_groups_frame_lens_and_enhancements() -> None:
    selection = EyeglassesSelection.from_dict(
        {
            "frame_source": "manual",
            "frame_brand": "Ray-Ban",
            "frame_price": "120",
            "frame_style": "semi-rimless",
            "lens_type": "single-vision",
            "lens_material": "polycarbonate",
            "ar_coating": "crizal-ez-pro",
            "addons": ["uv", "bogus"],
        }
    )

    layer = price_eyeglasses_layer(selection, DEFAULT_CATALOG, pof_fee=POF_FEE)

    assert layer.subtotal == Decimal("426.00")
    assert layer.insurance_coverage == Decimal("0.00")
    assert layer.details["frame_total"] == "155.00"
    assert layer.details["lens_total"] == "145.00"
    assert layer.details["enhancement_total"] == "126.00"
    assert layer.details["is_patient_owned_frame"] is False


def test_patient_owned_frame_uses_fixed_fee() -> None:
    selection = EyeglassesSelection.from_dict(
        {"frame_source": "pof", "frame_price": "999", "lens_type": "single-vision"}
    )

    layer = price_eyeglasses_layer(selection, DEFAULT_CATALOG, pof_fee=POF_FEE)

    assert layer.details["frame_total"] == "45.00"
    assert layer.subtotal == Decimal("125.00")
    assert layer.details["is_patient_owned_frame"] is True


def test_frame_coverage_needs_frame_allowance() -> None:
    selection = {
        "frame_source": "manual",
        "frame_price": "150",
        "lens_type": "single-vision",
    }
    with_allowance = InsuranceContext(
        carrier="VSP", allowances={"frame": Decimal("100")}
    )
    without_allowance = InsuranceContext(carrier="VSP")

    covered = price_eyeglasses_layer(
        EyeglassesSelection.from_dict(selection), DEFAULT_CATALOG, with_allowance, pof_fee=POF_FEE
    )
    uncovered = price_eyeglasses_layer(
        EyeglassesSelection.from_dict(selection), DEFAULT_CATALOG, without_allowance, pof_fee=POF_FEE
    )
    free_add = price_eyeglasses_layer(
        EyeglassesSelection.from_dict({**selection, "frame_source": "free_add"}),
        DEFAULT_CATALOG,
        with_allowance,
        pof_fee=POF_FEE,
    )

    assert covered.insurance_coverage == Decimal("180.00")
    assert uncovered.insurance_coverage == Decimal("80.00")
    assert free_add.insurance_coverage == Decimal("80.00")


def test_contacts_layer_uses_brand_rebate_when_blank() -> None:
    selection = ContactsSelection.from_dict(
        {
            "brand": "acuvue-oasys",
            "lens_type": "monthly",
            "specialties": ["care-kit"],
            "price_per_box": "60",
            "number_of_boxes": "4",
            "insurance_benefit": "50",
        }
    )

    layer = price_contacts_layer(selection, DEFAULT_CATALOG)

    assert layer.subtotal == Decimal("265.00")
    assert layer.insurance_coverage == Decimal("50.00")
    assert layer.discount == Decimal("100.00")
    assert layer.patient_responsibility == Decimal("115.00")
    assert layer.details["calculator"]["final_cost_per_box"] == "22.50"
