"""Priced option catalogs used by the quote pricing engine.

A :class:`PriceCatalog` is immutable reference data. Calculators receive the
catalog as an argument; nothing in the pricing path reads module state. An
account may persist its own catalog rows, otherwise the built-in
``DEFAULT_CATALOG`` (the practice's standard price list) applies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, Mapping
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import CatalogOption, QuoteLayer

DEFAULT_CATALOG_VERSION = "default-1"

EXCLUSIVE_EXAM_CATEGORIES = frozenset({"patient-type", "exam-type"})


@dataclass(frozen=True, slots=True)
class PricedOption:
    """A single catalog entry (exam service, lens type, coating, brand...)."""

    code: str
    name: str
    price: Decimal
    layer: QuoteLayer
    category: str
    insurance_covered: bool = False
    copay: Decimal | None = None
    duration_minutes: int | None = None
    rebate_amount: Decimal | None = None
    note: str | None = None


@dataclass(frozen=True, slots=True)
class PriceCatalog:
    """Versioned, read-only set of priced options."""

    version: str
    options: tuple[PricedOption, ...]
    _index: Mapping[tuple[QuoteLayer, str], PricedOption] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        index = {(option.layer, option.code): option for option in self.options}
        object.__setattr__(self, "_index", MappingProxyType(index))

    def get(self, layer: QuoteLayer, code: str | None) -> PricedOption | None:
        """Return the option for ``code`` in ``layer``; unknown codes give ``None``."""
        if not code:
            return None
        return self._index.get((layer, code))

    def find(
        self, layer: QuoteLayer, code: str | None, *, category: str
    ) -> PricedOption | None:
        """Like :meth:`get` but only matches options in ``category``."""
        option = self.get(layer, code)
        if option is None or option.category != category:
            return None
        return option

    def for_layer(self, layer: QuoteLayer) -> list[PricedOption]:
        return [option for option in self.options if option.layer is layer]

    def resolve(self, layer: QuoteLayer, codes: Iterable[str]) -> list[PricedOption]:
        """Map codes to options, silently dropping unknown codes."""
        resolved: list[PricedOption] = []
        for code in codes:
            option = self.get(layer, code)
            if option is not None:
                resolved.append(option)
        return resolved


def _opt(
    layer: QuoteLayer,
    category: str,
    code: str,
    name: str,
    price: str,
    **extra: object,
) -> PricedOption:
    copay = extra.pop("copay", None)
    rebate = extra.pop("rebate_amount", None)
    return PricedOption(
        code=code,
        name=name,
        price=Decimal(price),
        layer=layer,
        category=category,
        copay=Decimal(str(copay)) if copay is not None else None,
        rebate_amount=Decimal(str(rebate)) if rebate is not None else None,
        **extra,  # type: ignore[arg-type]
    )


_EXAM = QuoteLayer.EXAM
_GLASSES = QuoteLayer.EYEGLASSES
_CONTACTS = QuoteLayer.CONTACTS

_DEFAULT_OPTIONS: tuple[PricedOption, ...] = (
    # Exam services
    _opt(_EXAM, "patient-type", "new-patient", "New Patient", "0", duration_minutes=0),
    _opt(_EXAM, "patient-type", "established-patient", "Established Patient", "0", duration_minutes=0),
    _opt(_EXAM, "exam-type", "routine-exam", "Routine Exam", "150", duration_minutes=60, insurance_covered=True, copay=25),
    _opt(_EXAM, "exam-type", "medical-exam", "Medical Exam", "200", duration_minutes=90, insurance_covered=True, copay=35),
    _opt(_EXAM, "screeners", "iwellness", "iWellness", "39", duration_minutes=15),
    _opt(_EXAM, "screeners", "optomap", "OptoMap (Ultra-Wide Field Image)", "45", duration_minutes=15),
    _opt(_EXAM, "diagnostics", "oct-scan", "OCT (Retina and Optic Nerve)", "65", duration_minutes=20),
    _opt(_EXAM, "diagnostics", "visual-field", "Visual Field", "85", duration_minutes=30),
    _opt(_EXAM, "diagnostics", "external-photos", "External Photos", "25", duration_minutes=10),
    _opt(_EXAM, "diagnostics", "corneal-thickness", "Corneal Thickness Measurement", "35", duration_minutes=15),
    _opt(_EXAM, "advanced", "neurological-screening", "Neurological Headache Screening", "120", duration_minutes=45),
    _opt(_EXAM, "advanced", "atropine-evaluation", "Atropine Myopia Management Evaluation", "95", duration_minutes=35),
    _opt(_EXAM, "advanced", "amblyopia-evaluation", "Amblyopia Evaluation", "110", duration_minutes=40),
    _opt(_EXAM, "contact-fitting", "spherical-fitting", "Spherical Fitting", "75", duration_minutes=30),
    _opt(_EXAM, "contact-fitting", "toric-fitting", "Toric Fitting", "95", duration_minutes=35),
    _opt(_EXAM, "contact-fitting", "monovision-fitting", "Monovision Fitting", "85", duration_minutes=30),
    _opt(_EXAM, "contact-fitting", "multifocal-fitting", "Multifocal Fitting", "120", duration_minutes=45),
    _opt(_EXAM, "contact-fitting", "multifocal-toric-fitting", "Multifocal Toric Fitting", "150", duration_minutes=60),
    _opt(_EXAM, "contact-fitting", "corneal-rgp-fitting", "Corneal RGP Fitting", "200", duration_minutes=60),
    _opt(_EXAM, "contact-fitting", "specialty-contact-fitting", "Specialty Contact Lens Fitting", "250", duration_minutes=75),
    _opt(_EXAM, "contact-fitting", "ortho-k-fitting", "Ortho-K Myopia Management", "300", duration_minutes=90),
    _opt(_EXAM, "contact-fitting", "mysight-fitting", "MySight Myopia Management", "275", duration_minutes=80),
    # Eyeglasses: lens types
    _opt(_GLASSES, "lens-type", "single-vision", "Single Vision", "80.00", insurance_covered=True),
    _opt(_GLASSES, "lens-type", "eyezen", "Eyezen", "130.00", insurance_covered=True),
    _opt(_GLASSES, "lens-type", "ft-bifocal", "FT Bifocal", "182.00", insurance_covered=True),
    _opt(_GLASSES, "lens-type", "ft-trifocal", "FT Trifocal", "135.00", insurance_covered=True),
    _opt(_GLASSES, "lens-type", "varilux-comfort-drx", "Varilux Comfort DRx", "280.00", insurance_covered=True),
    _opt(_GLASSES, "lens-type", "varilux-comfort-max", "Varilux Comfort Max", "394.00", insurance_covered=True),
    _opt(_GLASSES, "lens-type", "varilux-i", "Varilux i", "480.00", note="cash pay only - no vision plans"),
    _opt(_GLASSES, "lens-type", "varilux-x", "Varilux X", "600.00", insurance_covered=True),
    _opt(_GLASSES, "lens-type", "neurolens-sv", "Neurolens SV", "400.00", note="cash pay only - no vision plans"),
    _opt(_GLASSES, "lens-type", "neurolens-progressive", "Neurolens Progressive", "700.00", note="cash pay only - no vision plans"),
    # Eyeglasses: materials
    _opt(_GLASSES, "lens-material", "plastic", "CR-39", "0.00", insurance_covered=True),
    _opt(_GLASSES, "lens-material", "polycarbonate", "Polycarbonate", "65.00", insurance_covered=True),
    _opt(_GLASSES, "lens-material", "trivex", "Trivex", "75.00", insurance_covered=True),
    _opt(_GLASSES, "lens-material", "high-index", "High Index 1.67", "130.00", insurance_covered=True),
    _opt(_GLASSES, "lens-material", "ultra-high-index", "Ultra High Index 1.72", "150.00", insurance_covered=True),
    # Eyeglasses: AR coatings
    _opt(_GLASSES, "ar-coating", "crizal-ez-pro", "Crizal EZ Pro", "111.00", insurance_covered=True),
    _opt(_GLASSES, "ar-coating", "crizal-rock", "Crizal Rock", "158.00", insurance_covered=True),
    _opt(_GLASSES, "ar-coating", "crizal-sunshield", "Crizal SunShield", "135.00", insurance_covered=True),
    _opt(_GLASSES, "ar-coating", "crizal-prevencia", "Crizal Prevencia", "187.00", insurance_covered=True),
    _opt(_GLASSES, "ar-coating", "crizal-sapphire", "Crizal Sapphire", "187.00", insurance_covered=True),
    _opt(_GLASSES, "ar-coating", "neurolens-premium", "Neurolens Premium", "180.00", note="cash pay only - no vision plans"),
    _opt(_GLASSES, "ar-coating", "neurolens-blue", "Neurolens Blue", "180.00", note="cash pay only - no vision plans"),
    _opt(_GLASSES, "ar-coating", "ar-opt-out", "Opt Out", "0.00", insurance_covered=True),
    # Eyeglasses: transitions and polarized
    _opt(_GLASSES, "transitions", "gen-s", "Transitions Gen S", "167.50", insurance_covered=True),
    _opt(_GLASSES, "transitions", "xtra-active", "Transitions Xtra Active", "167.50", insurance_covered=True),
    _opt(_GLASSES, "transitions", "transitions-opt-out", "Opt Out", "0.00", insurance_covered=True),
    _opt(_GLASSES, "polarized", "polarized", "Polarized", "129.75", insurance_covered=True),
    _opt(_GLASSES, "polarized", "polarized-opt-out", "Opt Out", "0.00", insurance_covered=True),
    # Eyeglasses: mount fees, keyed by frame style
    _opt(_GLASSES, "mount-fee", "full-rim", "Full Rim", "0.00"),
    _opt(_GLASSES, "mount-fee", "semi-rimless", "Semi-Rimless", "35.00"),
    _opt(_GLASSES, "mount-fee", "rimless", "Rimless", "47.00"),
    # Eyeglasses: add-ons
    _opt(_GLASSES, "lens-addon", "uv", "UV Protection", "15.00", insurance_covered=True),
    _opt(_GLASSES, "lens-addon", "mirror", "Mirror Coating", "45.00", insurance_covered=True),
    _opt(_GLASSES, "lens-addon", "tint", "Tint", "30.00", insurance_covered=True),
    _opt(_GLASSES, "lens-addon", "oversize", "Oversize Lenses", "30.00", insurance_covered=True),
    _opt(_GLASSES, "lens-addon", "tech-sv", "Tech Add-on Single Vision", "10.00", insurance_covered=True, note="VSP plan specific"),
    _opt(_GLASSES, "lens-addon", "tech-mf", "Tech Add-on Multifocal", "40.00", insurance_covered=True, note="VSP plan specific"),
    _opt(_GLASSES, "lens-addon", "prism", "Prism Per D", "12.00", insurance_covered=True),
    _opt(_GLASSES, "lens-addon", "essential-blue", "Essential Blue", "40.00", insurance_covered=True),
    _opt(_GLASSES, "lens-addon", "roll-polish", "Roll and Polish", "30.00", insurance_covered=True),
    # Contacts: brands carry the manufacturer rebate
    _opt(_CONTACTS, "contact-brand", "acuvue-oasys", "Acuvue Oasys", "0", insurance_covered=True, copay=25, rebate_amount=100),
    _opt(_CONTACTS, "contact-brand", "biofinity", "Biofinity", "0", insurance_covered=True, copay=30, rebate_amount=80),
    _opt(_CONTACTS, "contact-brand", "air-optix", "Air Optix", "0", insurance_covered=True, copay=20, rebate_amount=120),
    _opt(_CONTACTS, "contact-brand", "dailies-total1", "Dailies Total1", "0", insurance_covered=True, copay=35, rebate_amount=90),
    _opt(_CONTACTS, "contact-brand", "ultra", "Ultra", "0", insurance_covered=True, copay=25, rebate_amount=75),
    _opt(_CONTACTS, "contact-brand", "clariti", "Clariti", "0", insurance_covered=True, copay=40, rebate_amount=110),
    _opt(_CONTACTS, "contact-brand", "precision1", "Precision1", "0", insurance_covered=True, copay=30, rebate_amount=95),
    # Contacts: lens types (reference price per box)
    _opt(_CONTACTS, "contact-lens-type", "daily", "Daily Disposable", "35", insurance_covered=True, copay=15),
    _opt(_CONTACTS, "contact-lens-type", "weekly", "Weekly Disposable", "25", insurance_covered=True, copay=10),
    _opt(_CONTACTS, "contact-lens-type", "monthly", "Monthly Disposable", "30", insurance_covered=True, copay=12),
    _opt(_CONTACTS, "contact-lens-type", "toric", "Toric (Astigmatism)", "45", insurance_covered=True, copay=20),
    _opt(_CONTACTS, "contact-lens-type", "multifocal", "Multifocal", "55", insurance_covered=True, copay=25),
    _opt(_CONTACTS, "contact-lens-type", "colored", "Colored/Cosmetic", "40"),
    # Contacts: specialty options
    _opt(_CONTACTS, "contact-specialty", "trial-fitting", "Trial Fitting", "75"),
    _opt(_CONTACTS, "contact-specialty", "care-kit", "Contact Care Kit", "25"),
)

DEFAULT_CATALOG = PriceCatalog(version=DEFAULT_CATALOG_VERSION, options=_DEFAULT_OPTIONS)


def _from_row(row: CatalogOption) -> PricedOption:
    return PricedOption(
        code=row.code,
        name=row.name,
        price=Decimal(row.price),
        layer=row.layer,
        category=row.category,
        insurance_covered=row.insurance_covered,
        copay=Decimal(row.copay) if row.copay is not None else None,
        duration_minutes=row.duration_minutes,
        rebate_amount=Decimal(row.rebate_amount) if row.rebate_amount is not None else None,
        note=row.note,
    )


async def latest_version(session: AsyncSession, account_id: UUID) -> int | None:
    """Return the newest persisted catalog version for an account."""
    return await session.scalar(
        select(func.max(CatalogOption.catalog_version)).where(
            CatalogOption.account_id == account_id
        )
    )


async def load_catalog(session: AsyncSession, account_id: UUID) -> PriceCatalog:
    """Return the account's active catalog, or the default price list."""

    version = await latest_version(session, account_id)
    if version is None:
        return DEFAULT_CATALOG
    result = await session.execute(
        select(CatalogOption)
        .where(
            CatalogOption.account_id == account_id,
            CatalogOption.catalog_version == version,
            CatalogOption.active.is_(True),
        )
        .order_by(CatalogOption.layer, CatalogOption.category, CatalogOption.code)
    )
    rows = result.scalars().all()
    if not rows:
        return DEFAULT_CATALOG
    return PriceCatalog(
        version=f"account-{version}",
        options=tuple(_from_row(row) for row in rows),
    )


async def publish_catalog(
    session: AsyncSession,
    *,
    account_id: UUID,
    options: Iterable[PricedOption],
) -> PriceCatalog:
    """Persist ``options`` as a new catalog version for the account.

    Older versions are kept so historical quotes can still be explained.
    """

    current = await latest_version(session, account_id)
    version = (current or 0) + 1
    session.add_all(
        [
            CatalogOption(
                account_id=account_id,
                catalog_version=version,
                layer=option.layer,
                category=option.category,
                code=option.code,
                name=option.name,
                price=option.price,
                insurance_covered=option.insurance_covered,
                copay=option.copay,
                duration_minutes=option.duration_minutes,
                rebate_amount=option.rebate_amount,
                note=option.note,
            )
            for option in options
        ]
    )
    await session.commit()
    return await load_catalog(session, account_id)
