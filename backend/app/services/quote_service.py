"""Quote aggregation, persistence and lifecycle services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.core.settings import PricingSettings, get_pricing_settings
from app.models import (
    Customer,
    Location,
    Quote,
    QuoteStatus,
    QuoteStatusEvent,
    SecondPairDiscountType,
    TransitionCategory,
    User,
)
from app.schemas.quote import (
    PricingPreviewRequest,
    QuoteCreate,
    QuoteSelectionsUpdate,
)
from app.services import audit_service, catalog_service
from app.services.catalog_service import PriceCatalog
from app.services.insurance_service import InsuranceContext
from app.services.money import ZERO, clamp, coerce_amount, to_money, to_str
from app.services.pricing_service import (
    ContactsSelection,
    EyeglassesSelection,
    FrameSource,
    LayerPricing,
    normalize_exam_selection,
    price_contacts_layer,
    price_exam_layer,
    price_eyeglasses_layer,
    validate_exam_selection,
)
from app.services.quote_state_machine import (
    InvalidTransitionError,
    StateRequirements,
    can_edit,
    default_reason,
    next_valid_statuses,
    validate_transition,
)
from app.services.second_pair_calculator import (
    SecondPairError,
    calculate_second_pair_discount,
)

logger = logging.getLogger(__name__)

_STATUS_TIMESTAMPS: dict[QuoteStatus, str] = {
    QuoteStatus.PRESENTED: "presented_at",
    QuoteStatus.SIGNED: "signed_at",
    QuoteStatus.COMPLETED: "completed_at",
    QuoteStatus.CANCELLED: "cancelled_at",
    QuoteStatus.EXPIRED: "expired_at",
}


class QuoteNotFoundError(ValueError):
    """Raised when a quote does not exist for the account."""


class QuoteNotEditableError(ValueError):
    """Raised when selections change on a quote that is past drafting."""


class StaleQuoteRevisionError(ValueError):
    """Raised when a save was based on an outdated revision of the quote."""


class InsuranceConflictError(ValueError):
    """Raised when insurance coverage and a second-pair discount meet."""


@dataclass(frozen=True, slots=True)
class SecondPairTerms:
    discount_type: SecondPairDiscountType
    discount_percent: Decimal


@dataclass(slots=True)
class QuoteTotals:
    """Aggregate figures for a quote."""

    subtotal: Decimal
    discount: Decimal
    insurance_discount: Decimal
    tax_rate: Decimal
    tax: Decimal
    pre_total: Decimal
    second_pair_discount: Decimal
    total: Decimal
    patient_responsibility: Decimal

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal": to_str(self.subtotal),
            "discount": to_str(self.discount),
            "insurance_discount": to_str(self.insurance_discount),
            "tax_rate": str(self.tax_rate),
            "tax": to_str(self.tax),
            "second_pair_discount": to_str(self.second_pair_discount),
            "total": to_str(self.total),
            "patient_responsibility": to_str(self.patient_responsibility),
        }


@dataclass(slots=True)
class QuotePricing:
    """Everything computed for a quote's selections."""

    catalog_version: str
    exam_services: list[str]
    layers: list[LayerPricing]
    totals: QuoteTotals
    is_patient_owned_frame: bool
    exam_errors: list[str] = field(default_factory=list)
    exam_warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "catalog_version": self.catalog_version,
            "layers": [layer.to_dict() for layer in self.layers],
            "totals": self.totals.to_dict(),
            "is_patient_owned_frame": self.is_patient_owned_frame,
            "exam_errors": list(self.exam_errors),
            "exam_warnings": list(self.exam_warnings),
        }


def aggregate_quote(
    layers: Iterable[LayerPricing],
    *,
    tax_rate: Decimal,
    manual_discount: Decimal = ZERO,
    second_pair: SecondPairTerms | None = None,
) -> QuoteTotals:
    """Combine layer results into quote totals.

    Discounts clamp to the subtotal and insurance to what remains, so no
    figure goes negative. Tax is charged on the subtotal. A second-pair
    discount applies to the taxed total and cannot be combined with insurance.
    """

    layers = list(layers)
    subtotal = to_money(sum((layer.subtotal for layer in layers), ZERO))
    layer_discounts = sum((layer.discount for layer in layers), ZERO)
    discount = clamp(
        to_money(layer_discounts + coerce_amount(manual_discount)), ZERO, subtotal
    )
    insurance = clamp(
        to_money(sum((layer.insurance_coverage for layer in layers), ZERO)),
        ZERO,
        subtotal - discount,
    )
    tax = to_money(subtotal * tax_rate)
    pre_total = subtotal - discount - insurance + tax

    second_pair_discount = ZERO
    if second_pair is not None:
        applied = calculate_second_pair_discount(
            pre_total, second_pair.discount_type, second_pair.discount_percent
        )
        second_pair_discount = applied.discount_amount
    if insurance > 0 and second_pair_discount > 0:
        raise InsuranceConflictError(
            "Second pair discount cannot be combined with insurance coverage"
        )

    total = max(pre_total - second_pair_discount, ZERO)
    return QuoteTotals(
        subtotal=subtotal,
        discount=discount,
        insurance_discount=insurance,
        tax_rate=tax_rate,
        tax=tax,
        pre_total=pre_total,
        second_pair_discount=second_pair_discount,
        total=total,
        patient_responsibility=total,
    )


def price_selections(
    *,
    catalog: PriceCatalog,
    exam_services: Sequence[str],
    eyeglasses: EyeglassesSelection,
    contacts: ContactsSelection,
    insurance: InsuranceContext | None,
    tax_rate: Decimal,
    manual_discount: Any = None,
    second_pair: SecondPairTerms | None = None,
    settings: PricingSettings | None = None,
) -> QuotePricing:
    """Price every non-empty layer and aggregate the quote."""

    settings = settings or get_pricing_settings()
    exam_codes = normalize_exam_selection(exam_services, catalog)
    layers: list[LayerPricing] = []
    errors: list[str] = []
    warnings: list[str] = []
    if exam_codes:
        layers.append(price_exam_layer(exam_codes, catalog, insurance))
        validation = validate_exam_selection(exam_codes, catalog)
        errors.extend(validation.errors)
        warnings.extend(validation.warnings)
    if not eyeglasses.is_empty:
        layers.append(
            price_eyeglasses_layer(
                eyeglasses, catalog, insurance, pof_fee=settings.pof_fixed_fee
            )
        )
    if not contacts.is_empty:
        layers.append(price_contacts_layer(contacts, catalog))

    totals = aggregate_quote(
        layers,
        tax_rate=tax_rate,
        manual_discount=coerce_amount(manual_discount),
        second_pair=second_pair,
    )
    return QuotePricing(
        catalog_version=catalog.version,
        exam_services=exam_codes,
        layers=layers,
        totals=totals,
        is_patient_owned_frame=eyeglasses.frame_source is FrameSource.POF,
        exam_errors=errors,
        exam_warnings=warnings,
    )


def resolve_tax_rate(location: Location | None, settings: PricingSettings) -> Decimal:
    """Location tax rate, or the configured default."""

    if location is not None and location.tax_rate is not None:
        return Decimal(location.tax_rate)
    return settings.default_tax_rate


def insurance_for_quote(quote: Quote) -> InsuranceContext | None:
    return InsuranceContext.from_benefits(
        quote.insurance_carrier,
        quote.insurance_member_id,
        quote.insurance_benefits,
    )


def second_pair_terms(quote: Quote) -> SecondPairTerms | None:
    if not quote.is_second_pair or quote.second_pair_type is None:
        return None
    return SecondPairTerms(
        discount_type=quote.second_pair_type,
        discount_percent=Decimal(quote.second_pair_percent or 0),
    )


async def preview_pricing(
    session: AsyncSession,
    *,
    account_id: UUID,
    payload: PricingPreviewRequest,
) -> QuotePricing:
    """Price selections without persisting anything."""

    settings = get_pricing_settings()
    catalog = await catalog_service.load_catalog(session, account_id)

    location: Location | None = None
    if payload.location_id is not None:
        location = await _get_scoped(session, Location, payload.location_id, account_id)
        if location is None:
            raise ValueError("Location not found")
    insurance: InsuranceContext | None = None
    if payload.customer_id is not None:
        customer = await _get_scoped(session, Customer, payload.customer_id, account_id)
        if customer is None:
            raise ValueError("Customer not found")
        insurance = InsuranceContext.from_benefits(
            customer.insurance_carrier,
            customer.insurance_member_id,
            customer.insurance_benefits,
        )

    tax_rate = (
        payload.tax_rate
        if payload.tax_rate is not None
        else resolve_tax_rate(location, settings)
    )
    return price_selections(
        catalog=catalog,
        exam_services=payload.exam_services,
        eyeglasses=EyeglassesSelection.from_dict(_dump(payload.eyeglasses)),
        contacts=ContactsSelection.from_dict(_dump(payload.contacts)),
        insurance=insurance,
        tax_rate=tax_rate,
        manual_discount=payload.manual_discount,
        settings=settings,
    )


async def create_quote(
    session: AsyncSession,
    *,
    account_id: UUID,
    user: User,
    payload: QuoteCreate,
) -> Quote:
    """Start a quote, snapshot the customer's insurance and price it."""

    customer = await _get_scoped(session, Customer, payload.customer_id, account_id)
    if customer is None:
        raise ValueError("Customer not found")
    location = await _get_scoped(session, Location, payload.location_id, account_id)
    if location is None:
        raise ValueError("Location not found")

    quote = Quote(
        account_id=account_id,
        location_id=location.id,
        customer_id=customer.id,
        created_by_id=user.id,
        status=QuoteStatus.BUILDING,
        exam_services=list(payload.exam_services),
        eyeglasses=_dump(payload.eyeglasses),
        contacts=_dump(payload.contacts),
        manual_discount=coerce_amount(payload.manual_discount),
        insurance_benefits={},
        catalog_version=catalog_service.DEFAULT_CATALOG_VERSION,
    )
    if payload.use_insurance:
        _snapshot_insurance(quote, customer)

    await reprice_quote(session, quote, location=location)
    session.add(quote)
    await session.flush()
    session.add(
        QuoteStatusEvent(
            quote_id=quote.id,
            from_status=None,
            to_status=QuoteStatus.BUILDING,
            category=TransitionCategory.USER_ACTION,
            reason="Quote created",
            user_id=user.id,
        )
    )
    await session.commit()
    logger.info("Quote %s created for customer %s", quote.id, customer.id)
    return await get_quote(session, quote_id=quote.id, account_id=account_id)


async def get_quote(
    session: AsyncSession,
    *,
    quote_id: UUID,
    account_id: UUID,
) -> Quote:
    """Fetch a quote scoped to the account or raise ``QuoteNotFoundError``."""

    stmt: Select[tuple[Quote]] = (
        select(Quote)
        .options(selectinload(Quote.customer), selectinload(Quote.location))
        .where(Quote.id == quote_id, Quote.account_id == account_id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    quote = result.scalar_one_or_none()
    if quote is None:
        raise QuoteNotFoundError("Quote not found")
    return quote


async def list_quotes(
    session: AsyncSession,
    *,
    account_id: UUID,
    customer_id: UUID | None = None,
    location_id: UUID | None = None,
    status: QuoteStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Quote]:
    """Return quotes for an account, newest first."""

    stmt: Select[tuple[Quote]] = select(Quote).where(Quote.account_id == account_id)
    if customer_id is not None:
        stmt = stmt.where(Quote.customer_id == customer_id)
    if location_id is not None:
        stmt = stmt.where(Quote.location_id == location_id)
    if status is not None:
        stmt = stmt.where(Quote.status == status)
    stmt = stmt.order_by(Quote.created_at.desc()).offset(skip).limit(min(limit, 100))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_selections(
    session: AsyncSession,
    *,
    quote: Quote,
    payload: QuoteSelectionsUpdate,
    user: User,
) -> Quote:
    """Apply an auto-save of selections and re-price the quote.

    A save based on an older revision is rejected instead of overwriting the
    newer edit.
    """

    if not can_edit(quote.status):
        raise QuoteNotEditableError(
            f"Quote in status {quote.status.value} can no longer be edited"
        )
    if payload.expected_revision is not None and payload.expected_revision != quote.revision:
        raise StaleQuoteRevisionError(
            f"Quote was modified (revision {quote.revision}); reload before saving"
        )

    if payload.use_insurance is True and quote.is_second_pair:
        raise InsuranceConflictError("Insurance cannot be used on a second pair quote")
    fields = payload.model_fields_set
    if (
        quote.is_second_pair
        and "eyeglasses" in fields
        and not EyeglassesSelection.from_dict(_dump(payload.eyeglasses)).has_frame
    ):
        raise SecondPairError(
            "Second pair quotes must keep eyeglasses with a frame selection"
        )

    customer = await session.get(Customer, quote.customer_id)
    try:
        if "exam_services" in fields and payload.exam_services is not None:
            quote.exam_services = list(payload.exam_services)
        if "eyeglasses" in fields:
            quote.eyeglasses = _dump(payload.eyeglasses)
        if "contacts" in fields:
            quote.contacts = _dump(payload.contacts)
        if "manual_discount" in fields:
            quote.manual_discount = coerce_amount(payload.manual_discount)
        if payload.use_insurance is True and customer is not None:
            _snapshot_insurance(quote, customer)
        elif payload.use_insurance is False:
            _clear_insurance(quote)

        await reprice_quote(session, quote)
        quote.last_activity_at = datetime.now(UTC)
        await session.commit()
    except StaleDataError as exc:
        await session.rollback()
        raise StaleQuoteRevisionError(
            "Quote was modified by another save; reload before saving"
        ) from exc
    except ValueError:
        await session.rollback()
        raise
    logger.info("Quote %s saved at revision %s by %s", quote.id, quote.revision, user.id)
    return await get_quote(session, quote_id=quote.id, account_id=quote.account_id)


async def reprice_quote(
    session: AsyncSession,
    quote: Quote,
    *,
    location: Location | None = None,
    catalog: PriceCatalog | None = None,
    settings: PricingSettings | None = None,
    second_pair: SecondPairTerms | None = None,
) -> QuotePricing:
    """Recompute and store pricing on ``quote`` without committing."""

    settings = settings or get_pricing_settings()
    if catalog is None:
        catalog = await catalog_service.load_catalog(session, quote.account_id)
    if location is None:
        location = await session.get(Location, quote.location_id)
    pricing = price_selections(
        catalog=catalog,
        exam_services=quote.exam_services or [],
        eyeglasses=EyeglassesSelection.from_dict(quote.eyeglasses),
        contacts=ContactsSelection.from_dict(quote.contacts),
        insurance=insurance_for_quote(quote),
        tax_rate=resolve_tax_rate(location, settings),
        manual_discount=quote.manual_discount,
        second_pair=second_pair or second_pair_terms(quote),
        settings=settings,
    )
    _store_pricing(quote, pricing)
    return pricing


async def transition_status(
    session: AsyncSession,
    *,
    quote: Quote,
    target: QuoteStatus,
    user: User | None,
    reason: str | None = None,
    system: bool = False,
    now: datetime | None = None,
    commit: bool = True,
) -> Quote:
    """Move a quote to ``target``, recording the event and an audit entry."""

    requirements = await _requirements(session, quote)
    category = validate_transition(
        quote.status,
        target,
        requirements,
        is_manager=bool(user is not None and user.is_manager),
        system=system,
    )

    now = now or datetime.now(UTC)
    previous = quote.status
    quote.status = target
    timestamp_field = _STATUS_TIMESTAMPS.get(target)
    if timestamp_field is not None:
        setattr(quote, timestamp_field, now)
    if not system:
        quote.last_activity_at = now

    reason = reason or default_reason(previous, target)
    session.add(
        QuoteStatusEvent(
            quote_id=quote.id,
            from_status=previous,
            to_status=target,
            category=category,
            reason=reason,
            user_id=user.id if user is not None else None,
        )
    )
    await audit_service.record_event(
        session,
        event_type="quote.status_changed",
        account_id=quote.account_id,
        user_id=user.id if user is not None else None,
        description=reason,
        payload={
            "quote_id": str(quote.id),
            "from": previous.value,
            "to": target.value,
            "category": category.value,
        },
        commit=False,
    )
    if commit:
        try:
            await session.commit()
        except StaleDataError as exc:
            await session.rollback()
            raise StaleQuoteRevisionError(
                "Quote was modified by another save; reload before retrying"
            ) from exc
    logger.info("Quote %s moved %s -> %s", quote.id, previous.value, target.value)
    return quote


async def list_history(
    session: AsyncSession, *, quote: Quote, user: User | None = None
) -> tuple[list[QuoteStatusEvent], list[QuoteStatus]]:
    """Return status events (oldest first) and the statuses reachable now."""

    result = await session.execute(
        select(QuoteStatusEvent)
        .where(QuoteStatusEvent.quote_id == quote.id)
        .order_by(QuoteStatusEvent.created_at.asc())
    )
    requirements = await _requirements(session, quote)
    next_statuses = next_valid_statuses(
        quote.status,
        requirements,
        is_manager=bool(user is not None and user.is_manager),
    )
    return list(result.scalars().all()), next_statuses


async def _requirements(session: AsyncSession, quote: Quote) -> StateRequirements:
    customer = await session.get(Customer, quote.customer_id)
    return StateRequirements.evaluate(
        subtotal=quote.subtotal,
        customer_name=customer.full_name if customer is not None else None,
        insurance_carrier=quote.insurance_carrier,
        patient_responsibility=quote.patient_responsibility,
    )


def _store_pricing(quote: Quote, pricing: QuotePricing) -> None:
    totals = pricing.totals
    quote.exam_services = pricing.exam_services
    quote.catalog_version = pricing.catalog_version
    quote.subtotal = totals.subtotal
    quote.discount = totals.discount
    quote.insurance_discount = totals.insurance_discount
    quote.tax_rate = totals.tax_rate
    quote.tax = totals.tax
    quote.second_pair_discount = totals.second_pair_discount
    quote.total = totals.total
    quote.patient_responsibility = totals.patient_responsibility
    quote.is_patient_owned_frame = pricing.is_patient_owned_frame
    quote.pricing_breakdown = pricing.to_dict()


def _snapshot_insurance(quote: Quote, customer: Customer) -> None:
    if not customer.insurance_carrier:
        return
    quote.insurance_carrier = customer.insurance_carrier
    quote.insurance_member_id = customer.insurance_member_id
    quote.insurance_benefits = dict(customer.insurance_benefits or {})


def _clear_insurance(quote: Quote) -> None:
    quote.insurance_carrier = None
    quote.insurance_member_id = None
    quote.insurance_benefits = {}


def _dump(payload: Any) -> dict[str, Any]:
    if payload is None:
        return {}
    return payload.model_dump(mode="json")


async def _get_scoped(session: AsyncSession, model: Any, object_id: UUID, account_id: UUID):
    instance = await session.get(model, object_id)
    if instance is None or instance.account_id != account_id:
        return None
    return instance


__all__ = [
    "InsuranceConflictError",
    "InvalidTransitionError",
    "QuoteNotEditableError",
    "QuoteNotFoundError",
    "QuotePricing",
    "QuoteTotals",
    "SecondPairError",
    "SecondPairTerms",
    "StaleQuoteRevisionError",
    "aggregate_quote",
    "create_quote",
    "get_quote",
    "list_history",
    "list_quotes",
    "preview_pricing",
    "price_selections",
    "reprice_quote",
    "resolve_tax_rate",
    "transition_status",
    "update_selections",
]
