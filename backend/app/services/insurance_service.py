"""Insurance coverage resolution for priced options."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping

from app.services.catalog_service import PricedOption
from app.services.money import ZERO, clamp, coerce_amount, to_money


@dataclass(frozen=True, slots=True)
class InsuranceContext:
    """Snapshot of a patient's vision plan used while pricing a quote.

    ``copays`` replace the catalog copay for every option in a category and
    ``allowances`` cap the total the plan covers per category.
    """

    carrier: str
    member_id: str | None = None
    copays: Mapping[str, Decimal] = field(default_factory=dict)
    allowances: Mapping[str, Decimal] = field(default_factory=dict)

    @classmethod
    def from_benefits(
        cls,
        carrier: str | None,
        member_id: str | None = None,
        benefits: Mapping[str, Any] | None = None,
    ) -> "InsuranceContext | None":
        """Build a context from a stored benefits document; no carrier means cash."""

        if not carrier or not carrier.strip():
            return None
        benefits = benefits or {}
        copays = {
            str(category): coerce_amount(amount)
            for category, amount in (benefits.get("copays") or {}).items()
        }
        allowances = {
            str(category): coerce_amount(amount)
            for category, amount in (benefits.get("allowances") or {}).items()
        }
        return cls(
            carrier=carrier.strip(),
            member_id=member_id,
            copays=copays,
            allowances=allowances,
        )

    def has_allowance(self, category: str) -> bool:
        return category in self.allowances


@dataclass(frozen=True, slots=True)
class Coverage:
    """Split of an option price between patient and plan."""

    patient_pays: Decimal
    insurance_covers: Decimal


@dataclass(frozen=True, slots=True)
class ResolvedOption:
    option: PricedOption
    coverage: Coverage


@dataclass(frozen=True, slots=True)
class LayerCoverage:
    """Coverage for every option in a layer plus the totals."""

    items: tuple[ResolvedOption, ...]
    patient_pays: Decimal
    insurance_covers: Decimal


def resolve_option(
    option: PricedOption, copay_override: Decimal | None = None
) -> Coverage:
    """Resolve coverage for a single option.

    The copay is clamped into ``[0, price]`` so coverage is never negative.
    """

    price = to_money(option.price)
    if not option.insurance_covered:
        return Coverage(patient_pays=price, insurance_covers=ZERO)
    copay = copay_override if copay_override is not None else option.copay
    copay = clamp(to_money(copay or ZERO), ZERO, price)
    return Coverage(patient_pays=copay, insurance_covers=price - copay)


def resolve_layer(
    options: Iterable[PricedOption], insurance: InsuranceContext | None
) -> LayerCoverage:
    """Resolve coverage for a set of options under an optional plan."""

    resolved: list[ResolvedOption] = []
    remaining: dict[str, Decimal] = (
        dict(insurance.allowances) if insurance is not None else {}
    )
    for option in options:
        if insurance is None:
            price = to_money(option.price)
            coverage = Coverage(patient_pays=price, insurance_covers=ZERO)
        else:
            coverage = resolve_option(option, insurance.copays.get(option.category))
            if option.category in remaining:
                capped = min(coverage.insurance_covers, remaining[option.category])
                remaining[option.category] -= capped
                excess = coverage.insurance_covers - capped
                coverage = Coverage(
                    patient_pays=coverage.patient_pays + excess,
                    insurance_covers=capped,
                )
        resolved.append(ResolvedOption(option=option, coverage=coverage))

    patient_pays = sum((item.coverage.patient_pays for item in resolved), ZERO)
    insurance_covers = sum((item.coverage.insurance_covers for item in resolved), ZERO)
    return LayerCoverage(
        items=tuple(resolved),
        patient_pays=to_money(patient_pays),
        insurance_covers=to_money(insurance_covers),
    )


__all__ = [
    "Coverage",
    "InsuranceContext",
    "LayerCoverage",
    "ResolvedOption",
    "resolve_layer",
    "resolve_option",
]
