"""Line-item pricing for the exam, eyeglasses and contacts quote layers.

Every function here is pure: the catalog, insurance context and fees are
passed in and nothing is read from module state, so pricing the same
selection twice always yields the same result.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping

from app.models import QuoteLayer
from app.services.catalog_service import (
    EXCLUSIVE_EXAM_CATEGORIES,
    PriceCatalog,
    PricedOption,
)
from app.services.insurance_service import InsuranceContext, resolve_layer
from app.services.money import (
    ZERO,
    clamp,
    coerce_amount,
    coerce_quantity,
    to_money,
    to_str,
)

MAX_EXAM_DURATION_MINUTES = 120


class FrameSource(str, enum.Enum):
    """Where the frame on an eyeglasses quote comes from."""

    BRAND = "brand"
    MANUAL = "manual"
    FREE_ADD = "free_add"
    POF = "pof"


@dataclass(slots=True)
class PricingLine:
    """Individual component contributing to a layer subtotal."""

    code: str
    description: str
    category: str
    amount: Decimal
    insurance_covers: Decimal = ZERO

    def to_dict(self) -> dict[str, str]:
        return {
            "code": self.code,
            "description": self.description,
            "category": self.category,
            "amount": to_str(self.amount),
            "insurance_covers": to_str(self.insurance_covers),
        }


@dataclass(slots=True)
class LayerPricing:
    """Priced result for one quote layer."""

    layer: QuoteLayer
    subtotal: Decimal
    insurance_coverage: Decimal
    discount: Decimal
    patient_responsibility: Decimal
    items: list[PricingLine] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the layer to plain types for responses and storage."""

        return {
            "layer": self.layer.value,
            "subtotal": to_str(self.subtotal),
            "insurance_coverage": to_str(self.insurance_coverage),
            "discount": to_str(self.discount),
            "patient_responsibility": to_str(self.patient_responsibility),
            "items": [line.to_dict() for line in self.items],
            "details": self.details,
        }


@dataclass(frozen=True, slots=True)
class EyeglassesSelection:
    frame_source: FrameSource | None = None
    frame_brand: str | None = None
    frame_model: str | None = None
    frame_price: Any = None
    frame_style: str | None = None
    lens_type: str | None = None
    lens_material: str | None = None
    ar_coating: str | None = None
    transitions: str | None = None
    polarized: str | None = None
    addons: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "EyeglassesSelection":
        data = data or {}
        source = data.get("frame_source")
        try:
            frame_source = FrameSource(source) if source else None
        except ValueError:
            frame_source = None
        return cls(
            frame_source=frame_source,
            frame_brand=data.get("frame_brand"),
            frame_model=data.get("frame_model"),
            frame_price=data.get("frame_price"),
            frame_style=data.get("frame_style"),
            lens_type=data.get("lens_type"),
            lens_material=data.get("lens_material"),
            ar_coating=data.get("ar_coating"),
            transitions=data.get("transitions"),
            polarized=data.get("polarized"),
            addons=tuple(data.get("addons") or ()),
        )

    @property
    def has_frame(self) -> bool:
        return self.frame_source is not None

    @property
    def is_empty(self) -> bool:
        return not self.has_frame and not any(
            (
                self.lens_type,
                self.lens_material,
                self.ar_coating,
                self.transitions,
                self.polarized,
                self.addons,
            )
        )


@dataclass(frozen=True, slots=True)
class ContactsSelection:
    brand: str | None = None
    lens_type: str | None = None
    specialties: tuple[str, ...] = ()
    price_per_box: Any = None
    number_of_boxes: Any = None
    additional_savings: Any = None
    insurance_benefit: Any = None
    manufacturer_rebate: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ContactsSelection":
        data = data or {}
        return cls(
            brand=data.get("brand"),
            lens_type=data.get("lens_type"),
            specialties=tuple(data.get("specialties") or ()),
            price_per_box=data.get("price_per_box"),
            number_of_boxes=data.get("number_of_boxes"),
            additional_savings=data.get("additional_savings"),
            insurance_benefit=data.get("insurance_benefit"),
            manufacturer_rebate=data.get("manufacturer_rebate"),
        )

    @property
    def is_empty(self) -> bool:
        return (
            not self.brand
            and not self.lens_type
            and not self.specialties
            and coerce_quantity(self.number_of_boxes) == 0
        )


@dataclass(frozen=True, slots=True)
class ContactPricing:
    """Result of the contact-lens price calculator."""

    price_per_box: Decimal
    number_of_boxes: int
    total_cost: Decimal
    additional_savings: Decimal
    insurance_benefit: Decimal
    manufacturer_rebate: Decimal
    in_office_total: Decimal
    after_rebate_total: Decimal
    final_cost_per_box: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "price_per_box": to_str(self.price_per_box),
            "number_of_boxes": self.number_of_boxes,
            "total_cost": to_str(self.total_cost),
            "additional_savings": to_str(self.additional_savings),
            "insurance_benefit": to_str(self.insurance_benefit),
            "manufacturer_rebate": to_str(self.manufacturer_rebate),
            "in_office_total": to_str(self.in_office_total),
            "after_rebate_total": to_str(self.after_rebate_total),
            "final_cost_per_box": to_str(self.final_cost_per_box),
        }


@dataclass(frozen=True, slots=True)
class ExamValidation:
    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    total_duration_minutes: int

    @property
    def is_valid(self) -> bool:
        return not self.errors


def calculate_contact_pricing(
    price_per_box: Any,
    number_of_boxes: Any,
    additional_savings: Any = None,
    insurance_benefit: Any = None,
    manufacturer_rebate: Any = None,
) -> ContactPricing:
    """Run the contact-lens calculator over raw user-entered values.

    Malformed or negative entries count as zero. Each reduction is clamped so
    no intermediate total goes below zero, and the reported savings, benefit
    and rebate are the amounts that actually applied.
    """

    per_box = coerce_amount(price_per_box)
    boxes = coerce_quantity(number_of_boxes)
    total_cost = to_money(per_box * boxes)

    savings = clamp(coerce_amount(additional_savings), ZERO, total_cost)
    benefit = clamp(coerce_amount(insurance_benefit), ZERO, total_cost - savings)
    in_office_total = total_cost - savings - benefit

    rebate = clamp(coerce_amount(manufacturer_rebate), ZERO, in_office_total)
    after_rebate_total = in_office_total - rebate

    final_cost_per_box = to_money(after_rebate_total / boxes) if boxes > 0 else ZERO

    return ContactPricing(
        price_per_box=per_box,
        number_of_boxes=boxes,
        total_cost=total_cost,
        additional_savings=savings,
        insurance_benefit=benefit,
        manufacturer_rebate=rebate,
        in_office_total=in_office_total,
        after_rebate_total=after_rebate_total,
        final_cost_per_box=final_cost_per_box,
    )


def normalize_exam_selection(codes: Iterable[str], catalog: PriceCatalog) -> list[str]:
    """Drop unknown and duplicate codes; keep one option per exclusive category.

    Within ``patient-type`` and ``exam-type`` the last selected option wins.
    """

    selected: list[PricedOption] = []
    for code in codes:
        option = catalog.get(QuoteLayer.EXAM, code)
        if option is None or option in selected:
            continue
        if option.category in EXCLUSIVE_EXAM_CATEGORIES:
            selected = [item for item in selected if item.category != option.category]
        selected.append(option)
    return [option.code for option in selected]


def validate_exam_selection(
    codes: Iterable[str], catalog: PriceCatalog
) -> ExamValidation:
    """Check an exam selection for required categories and total chair time."""

    options = _unique(catalog.resolve(QuoteLayer.EXAM, codes))
    errors: list[str] = []
    warnings: list[str] = []

    categories = [option.category for option in options]
    if "patient-type" not in categories:
        errors.append("Patient type is required")
    if "exam-type" not in categories:
        errors.append("Exam type is required")
    for category in sorted(EXCLUSIVE_EXAM_CATEGORIES):
        if categories.count(category) > 1:
            errors.append(f"Only one {category.replace('-', ' ')} may be selected")

    duration = sum(option.duration_minutes or 0 for option in options)
    if duration > MAX_EXAM_DURATION_MINUTES:
        warnings.append(
            f"Total exam duration ({duration} minutes) exceeds "
            f"{MAX_EXAM_DURATION_MINUTES} minutes"
        )
    return ExamValidation(
        errors=tuple(errors),
        warnings=tuple(warnings),
        total_duration_minutes=duration,
    )


def price_exam_layer(
    codes: Iterable[str],
    catalog: PriceCatalog,
    insurance: InsuranceContext | None = None,
) -> LayerPricing:
    """Sum the selected exam services; unknown codes contribute nothing."""

    options = _unique(catalog.resolve(QuoteLayer.EXAM, codes))
    pricing = _price_options(QuoteLayer.EXAM, options, insurance)
    pricing.details["total_duration_minutes"] = sum(
        option.duration_minutes or 0 for option in options
    )
    return pricing


def price_eyeglasses_layer(
    selection: EyeglassesSelection,
    catalog: PriceCatalog,
    insurance: InsuranceContext | None = None,
    *,
    pof_fee: Decimal,
) -> LayerPricing:
    """Price a frame plus lens configuration.

    The frame charge depends on the source: manual and free-add frames use the
    entered price, a patient-owned frame costs the fixed POF fee and a brand
    frame is priced at zero. The mount fee follows the frame style.
    """

    layer = QuoteLayer.EYEGLASSES
    frame_options: list[PricedOption] = []
    if selection.frame_source is not None:
        frame_options.append(_frame_option(selection, insurance, pof_fee))
    mount = catalog.find(layer, selection.frame_style, category="mount-fee")
    if mount is not None:
        frame_options.append(mount)

    lens_options = [
        option
        for option in (
            catalog.find(layer, selection.lens_type, category="lens-type"),
            catalog.find(layer, selection.lens_material, category="lens-material"),
        )
        if option is not None
    ]

    enhancement_options = [
        option
        for option in (
            catalog.find(layer, selection.ar_coating, category="ar-coating"),
            catalog.find(layer, selection.transitions, category="transitions"),
            catalog.find(layer, selection.polarized, category="polarized"),
        )
        if option is not None
    ]
    for code in selection.addons:
        addon = catalog.find(layer, code, category="lens-addon")
        if addon is not None and addon not in enhancement_options:
            enhancement_options.append(addon)

    pricing = _price_options(
        layer, [*frame_options, *lens_options, *enhancement_options], insurance
    )
    pricing.details.update(
        {
            "frame_source": (
                selection.frame_source.value if selection.frame_source else None
            ),
            "frame_total": to_str(_sum_prices(frame_options)),
            "lens_total": to_str(_sum_prices(lens_options)),
            "enhancement_total": to_str(_sum_prices(enhancement_options)),
            "is_patient_owned_frame": selection.frame_source is FrameSource.POF,
        }
    )
    return pricing


def price_contacts_layer(
    selection: ContactsSelection, catalog: PriceCatalog
) -> LayerPricing:
    """Price contact lenses from the manual calculator plus specialty options.

    When no rebate was entered the selected brand's catalog rebate applies.
    """

    layer = QuoteLayer.CONTACTS
    brand = catalog.find(layer, selection.brand, category="contact-brand")
    lens_type = catalog.find(layer, selection.lens_type, category="contact-lens-type")

    rebate_entry = selection.manufacturer_rebate
    if _is_blank(rebate_entry) and brand is not None:
        rebate_entry = brand.rebate_amount

    calc = calculate_contact_pricing(
        selection.price_per_box,
        selection.number_of_boxes,
        selection.additional_savings,
        selection.insurance_benefit,
        rebate_entry,
    )

    items: list[PricingLine] = []
    if calc.total_cost > 0:
        description = " ".join(
            part
            for part in (
                brand.name if brand else None,
                lens_type.name if lens_type else None,
                f"x{calc.number_of_boxes} boxes",
            )
            if part
        )
        items.append(
            PricingLine(
                code=brand.code if brand else "contact-lenses",
                description=description,
                category="contact-lenses",
                amount=calc.total_cost,
                insurance_covers=calc.insurance_benefit,
            )
        )

    specialties = _unique(
        option
        for option in catalog.resolve(layer, selection.specialties)
        if option.category == "contact-specialty"
    )
    specialty_total = _sum_prices(specialties)
    items.extend(
        PricingLine(
            code=option.code,
            description=option.name,
            category=option.category,
            amount=to_money(option.price),
        )
        for option in specialties
    )

    subtotal = to_money(calc.total_cost + specialty_total)
    discount = to_money(calc.additional_savings + calc.manufacturer_rebate)
    return LayerPricing(
        layer=layer,
        subtotal=subtotal,
        insurance_coverage=calc.insurance_benefit,
        discount=discount,
        patient_responsibility=to_money(calc.after_rebate_total + specialty_total),
        items=items,
        details={"calculator": calc.to_dict()},
    )


def _price_options(
    layer: QuoteLayer,
    options: list[PricedOption],
    insurance: InsuranceContext | None,
) -> LayerPricing:
    coverage = resolve_layer(options, insurance)
    items = [
        PricingLine(
            code=resolved.option.code,
            description=resolved.option.name,
            category=resolved.option.category,
            amount=to_money(resolved.option.price),
            insurance_covers=resolved.coverage.insurance_covers,
        )
        for resolved in coverage.items
    ]
    subtotal = _sum_prices(options)
    return LayerPricing(
        layer=layer,
        subtotal=subtotal,
        insurance_coverage=coverage.insurance_covers,
        discount=ZERO,
        patient_responsibility=to_money(subtotal - coverage.insurance_covers),
        items=items,
    )


def _frame_option(
    selection: EyeglassesSelection,
    insurance: InsuranceContext | None,
    pof_fee: Decimal,
) -> PricedOption:
    source = selection.frame_source
    if source is FrameSource.POF:
        return PricedOption(
            code="pof-fee",
            name="Patient Owned Frame Fee",
            price=to_money(pof_fee),
            layer=QuoteLayer.EYEGLASSES,
            category="frame",
        )
    if source in (FrameSource.MANUAL, FrameSource.FREE_ADD):
        price = coerce_amount(selection.frame_price)
    else:
        price = ZERO
    name = " ".join(
        part for part in (selection.frame_brand, selection.frame_model) if part
    )
    # Frames are only covered by plans that carry a frame allowance.
    covered = (
        source is not FrameSource.FREE_ADD
        and insurance is not None
        and insurance.has_allowance("frame")
    )
    return PricedOption(
        code=f"frame-{source.value}",
        name=name or "Frame",
        price=price,
        layer=QuoteLayer.EYEGLASSES,
        category="frame",
        insurance_covered=covered,
    )


def _sum_prices(options: Iterable[PricedOption]) -> Decimal:
    return to_money(sum((to_money(option.price) for option in options), ZERO))


def _unique(options: Iterable[PricedOption]) -> list[PricedOption]:
    unique: list[PricedOption] = []
    for option in options:
        if option not in unique:
            unique.append(option)
    return unique


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


__all__ = [
    "ContactPricing",
    "ContactsSelection",
    "ExamValidation",
    "EyeglassesSelection",
    "FrameSource",
    "LayerPricing",
    "PricingLine",
    "calculate_contact_pricing",
    "normalize_exam_selection",
    "price_contacts_layer",
    "price_eyeglasses_layer",
    "price_exam_layer",
    "validate_exam_selection",
]
