"""Second-pair eligibility, application and reporting services."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, exists, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.core.settings import PricingSettings, get_pricing_settings
from app.models import (
    Customer,
    Location,
    Quote,
    QuoteStatus,
    SecondPairDiscountType,
    SecondPairRecord,
    User,
)
from app.services import audit_service, quote_service
from app.services.money import ZERO, to_money
from app.services.pricing_service import EyeglassesSelection
from app.services.second_pair_calculator import (
    SecondPairEligibility,
    SecondPairError,
    SecondPairStatus,
    calendar_days_between,
    classify_days,
    discount_for_status,
    location_zone,
)

logger = logging.getLogger(__name__)

APPLICABLE_STATUSES = frozenset(
    {QuoteStatus.BUILDING, QuoteStatus.DRAFT, QuoteStatus.PRESENTED}
)


class SecondPairNotEligibleError(SecondPairError):
    """Raised when the customer has no qualifying original purchase."""

    def __init__(self, eligibility: SecondPairEligibility) -> None:
        super().__init__(
            eligibility.reason or "Customer not eligible for second pair discount"
        )
        self.eligibility = eligibility


class SecondPairForbiddenError(SecondPairError):
    """Raised when a non-manager attempts a manager override."""


@dataclass(frozen=True, slots=True)
class ManagerOverride:
    discount_percent: Decimal
    reason: str
    override_by: str | None = None


@dataclass(slots=True)
class SecondPairApplication:
    """Outcome of applying a second-pair discount to a quote."""

    quote: Quote
    record: SecondPairRecord
    eligibility: SecondPairEligibility
    original_total: Decimal
    discount_amount: Decimal
    final_total: Decimal
    discount_percent: Decimal


@dataclass(frozen=True, slots=True)
class EligibleCustomer:
    customer_id: UUID
    name: str
    email: str | None
    original_quote_id: UUID
    original_purchase_date: datetime
    days_ago: int
    discount_type: SecondPairDiscountType
    discount_percent: Decimal


@dataclass(frozen=True, slots=True)
class SecondPairStats:
    total_second_pairs: int
    same_day_pairs: int
    thirty_day_pairs: int
    manager_overrides: int
    total_discount_amount: Decimal


def validate_second_pair_quote(quote: Quote) -> None:
    """Raise ``SecondPairError`` unless the quote can take a second-pair discount."""

    if not EyeglassesSelection.from_dict(quote.eyeglasses).has_frame:
        raise SecondPairError(
            "Second pair discount requires eyeglasses with a frame selection"
        )
    if quote.is_second_pair:
        raise SecondPairError("Quote is already marked as a second pair")
    if quote.insurance_carrier:
        raise SecondPairError(
            "Second pair discount is only available for cash payments (no insurance)"
        )


async def check_eligibility(
    session: AsyncSession,
    *,
    account_id: UUID,
    customer_id: UUID,
    location_id: UUID | None = None,
    now: datetime | None = None,
    settings: PricingSettings | None = None,
) -> SecondPairEligibility:
    """Derive eligibility from the customer's recent completed purchases.

    The most recent completed original purchases are inspected newest first;
    purchases that already have a second pair are skipped and the first one
    inside the window decides the discount.
    """

    settings = settings or get_pricing_settings()
    now = now or datetime.now(UTC)

    stmt: Select[tuple[Quote]] = (
        select(Quote)
        .options(selectinload(Quote.location))
        .where(
            Quote.account_id == account_id,
            Quote.customer_id == customer_id,
            Quote.status == QuoteStatus.COMPLETED,
            Quote.is_second_pair.is_(False),
            Quote.completed_at.is_not(None),
        )
        .order_by(Quote.completed_at.desc())
        .limit(settings.history_depth)
    )
    if location_id is not None:
        stmt = stmt.where(Quote.location_id == location_id)
    quotes = list((await session.execute(stmt)).scalars().all())
    if not quotes:
        return SecondPairEligibility(
            status=SecondPairStatus.NOT_ELIGIBLE,
            reason="No recent eyeglasses purchases found",
        )

    used = set(
        (
            await session.execute(
                select(SecondPairRecord.original_quote_id).where(
                    SecondPairRecord.original_quote_id.in_([q.id for q in quotes])
                )
            )
        ).scalars()
    )

    for original in quotes:
        if original.id in used or original.completed_at is None:
            continue
        zone = location_zone(original.location.timezone if original.location else None)
        days = calendar_days_between(original.completed_at, now, zone)
        status = classify_days(days, settings)
        discount = discount_for_status(status, settings)
        if discount is None:
            continue
        discount_type, percent = discount
        return SecondPairEligibility(
            status=status,
            discount_type=discount_type,
            discount_percent=percent,
            original_quote_id=original.id,
            original_purchase_date=original.completed_at,
            days_after_original=days,
        )

    return SecondPairEligibility(
        status=SecondPairStatus.NOT_ELIGIBLE,
        reason=f"No eligible purchases within {settings.window_days} days",
    )


async def apply_second_pair(
    session: AsyncSession,
    *,
    account_id: UUID,
    quote_id: UUID,
    customer_id: UUID,
    location_id: UUID,
    user: User,
    manager_override: ManagerOverride | None = None,
    now: datetime | None = None,
) -> SecondPairApplication:
    """Apply the second-pair discount to a quote in a single transaction.

    Any failure rolls the transaction back, leaving the quote unchanged.
    """

    settings = get_pricing_settings()
    now = now or datetime.now(UTC)

    quote = await quote_service.get_quote(session, quote_id=quote_id, account_id=account_id)
    if quote.customer_id != customer_id or quote.location_id != location_id:
        raise SecondPairError("Quote does not belong to the given customer and location")
    if quote.status not in APPLICABLE_STATUSES:
        raise SecondPairError(
            f"Second pair discount cannot be applied to a {quote.status.value} quote"
        )
    validate_second_pair_quote(quote)

    if manager_override is not None:
        _validate_override(manager_override, user, settings)

    eligibility = await check_eligibility(
        session,
        account_id=account_id,
        customer_id=customer_id,
        location_id=location_id,
        now=now,
        settings=settings,
    )
    if manager_override is not None:
        eligibility = dataclasses.replace(
            eligibility,
            discount_type=SecondPairDiscountType.MANAGER_OVERRIDE,
            discount_percent=Decimal(manager_override.discount_percent),
            original_quote_id=eligibility.original_quote_id or quote.id,
            original_purchase_date=eligibility.original_purchase_date or now,
            days_after_original=eligibility.days_after_original or 0,
            reason="Manager override applied",
        )
    elif not eligibility.is_eligible:
        raise SecondPairNotEligibleError(eligibility)

    if (
        eligibility.discount_type is None
        or eligibility.discount_percent is None
        or eligibility.original_quote_id is None
        or eligibility.original_purchase_date is None
    ):  # pragma: no cover - eligible results always carry these
        raise SecondPairNotEligibleError(eligibility)

    try:
        quote.is_second_pair = True
        quote.second_pair_type = eligibility.discount_type
        quote.second_pair_percent = eligibility.discount_percent
        pricing = await quote_service.reprice_quote(session, quote, settings=settings)
        quote.last_activity_at = now
        totals = pricing.totals

        record = SecondPairRecord(
            account_id=account_id,
            original_quote_id=eligibility.original_quote_id,
            second_pair_quote_id=quote.id,
            customer_id=customer_id,
            user_id=user.id,
            location_id=location_id,
            discount_type=eligibility.discount_type,
            discount_percent=eligibility.discount_percent,
            discount_amount=totals.second_pair_discount,
            original_total=totals.pre_total,
            final_total=totals.total,
            original_purchase_date=eligibility.original_purchase_date,
            second_pair_purchase_date=now,
            days_after_original=eligibility.days_after_original or 0,
            manager_override=manager_override is not None,
            override_reason=manager_override.reason.strip() if manager_override else None,
            override_by=(
                (manager_override.override_by or user.email) if manager_override else None
            ),
        )
        session.add(record)
        await session.flush()
        await audit_service.record_event(
            session,
            event_type="quote.second_pair_applied",
            account_id=account_id,
            user_id=user.id,
            description=f"Second pair discount {eligibility.discount_type.value}",
            payload={
                "quote_id": str(quote.id),
                "original_quote_id": str(eligibility.original_quote_id),
                "discount_percent": str(eligibility.discount_percent),
                "discount_amount": str(totals.second_pair_discount),
                "manager_override": manager_override is not None,
            },
            commit=False,
        )
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise SecondPairError(
            "A second pair has already been recorded for this purchase"
        ) from exc
    except StaleDataError as exc:
        await session.rollback()
        raise quote_service.StaleQuoteRevisionError(
            "Quote was modified by another save; reload and retry"
        ) from exc
    except (ValueError, SQLAlchemyError):
        await session.rollback()
        raise

    logger.info(
        "Second pair %s applied to quote %s (%s%% off, original %s)",
        eligibility.discount_type.value,
        quote.id,
        eligibility.discount_percent,
        eligibility.original_quote_id,
    )
    return SecondPairApplication(
        quote=quote,
        record=record,
        eligibility=eligibility,
        original_total=totals.pre_total,
        discount_amount=totals.second_pair_discount,
        final_total=totals.total,
        discount_percent=eligibility.discount_percent,
    )


async def list_eligible_customers(
    session: AsyncSession,
    *,
    account_id: UUID,
    location_id: UUID | None = None,
    limit: int | None = 5,
    now: datetime | None = None,
    settings: PricingSettings | None = None,
) -> list[EligibleCustomer]:
    """Customers with a completed original purchase still inside the window."""

    settings = settings or get_pricing_settings()
    now = now or datetime.now(UTC)
    # One extra day of slack; the calendar-day check below is authoritative.
    cutoff = now - timedelta(days=settings.window_days + 1)

    stmt = (
        select(Quote, Customer, Location.timezone)
        .join(Customer, Customer.id == Quote.customer_id)
        .join(Location, Location.id == Quote.location_id)
        .where(
            Quote.account_id == account_id,
            Quote.status == QuoteStatus.COMPLETED,
            Quote.is_second_pair.is_(False),
            Quote.completed_at.is_not(None),
            Quote.completed_at >= cutoff,
            ~exists().where(SecondPairRecord.original_quote_id == Quote.id),
        )
        .order_by(Quote.completed_at.desc())
    )
    if location_id is not None:
        stmt = stmt.where(Quote.location_id == location_id)

    eligible: list[EligibleCustomer] = []
    for quote, customer, timezone in (await session.execute(stmt)).all():
        days = calendar_days_between(quote.completed_at, now, location_zone(timezone))
        discount = discount_for_status(classify_days(days, settings), settings)
        if discount is None:
            continue
        discount_type, percent = discount
        eligible.append(
            EligibleCustomer(
                customer_id=customer.id,
                name=customer.full_name,
                email=customer.email,
                original_quote_id=quote.id,
                original_purchase_date=quote.completed_at,
                days_ago=days,
                discount_type=discount_type,
                discount_percent=percent,
            )
        )
        if limit is not None and len(eligible) >= limit:
            break
    return eligible


async def count_eligible_customers(
    session: AsyncSession,
    *,
    account_id: UUID,
    location_id: UUID | None = None,
    now: datetime | None = None,
) -> int:
    """Number of original purchases that could still earn a second pair."""

    eligible = await list_eligible_customers(
        session, account_id=account_id, location_id=location_id, limit=None, now=now
    )
    return len(eligible)


async def get_stats(
    session: AsyncSession,
    *,
    account_id: UUID,
    location_id: UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> SecondPairStats:
    """Counts per discount type and the total discount granted."""

    stmt = (
        select(
            SecondPairRecord.discount_type,
            func.count(SecondPairRecord.id),
            func.coalesce(func.sum(SecondPairRecord.discount_amount), 0),
        )
        .where(SecondPairRecord.account_id == account_id)
        .group_by(SecondPairRecord.discount_type)
    )
    if location_id is not None:
        stmt = stmt.where(SecondPairRecord.location_id == location_id)
    if start is not None:
        stmt = stmt.where(SecondPairRecord.second_pair_purchase_date >= start)
    if end is not None:
        stmt = stmt.where(SecondPairRecord.second_pair_purchase_date <= end)

    counts: dict[SecondPairDiscountType, int] = {}
    total_discount = ZERO
    for discount_type, count, amount in (await session.execute(stmt)).all():
        counts[discount_type] = int(count)
        total_discount += Decimal(str(amount))

    return SecondPairStats(
        total_second_pairs=sum(counts.values()),
        same_day_pairs=counts.get(SecondPairDiscountType.SAME_DAY_50, 0),
        thirty_day_pairs=counts.get(SecondPairDiscountType.THIRTY_DAY_30, 0),
        manager_overrides=counts.get(SecondPairDiscountType.MANAGER_OVERRIDE, 0),
        total_discount_amount=to_money(total_discount),
    )


def _validate_override(
    override: ManagerOverride, user: User, settings: PricingSettings
) -> None:
    if not user.is_manager:
        raise SecondPairForbiddenError(
            "Manager override requires a manager or administrator"
        )
    percent = Decimal(override.discount_percent)
    if percent < 0 or percent > 100:
        raise SecondPairError(
            "Manager override discount must be between 0 and 100 percent"
        )
    if len((override.reason or "").strip()) < settings.manager_override_min_reason:
        raise SecondPairError(
            "Manager override requires a detailed reason "
            f"(minimum {settings.manager_override_min_reason} characters)"
        )


__all__ = [
    "EligibleCustomer",
    "ManagerOverride",
    "SecondPairApplication",
    "SecondPairForbiddenError",
    "SecondPairNotEligibleError",
    "SecondPairStats",
    "apply_second_pair",
    "check_eligibility",
    "count_eligible_customers",
    "get_stats",
    "list_eligible_customers",
    "validate_second_pair_quote",
]
