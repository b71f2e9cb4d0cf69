"""Automatic expiration of inactive draft and presented quotes."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.settings import QuoteLifecycleSettings, get_lifecycle_settings
from app.models import Quote, QuoteStatus
from app.services import quote_service
from app.services.quote_state_machine import EXPIRABLE_STATUSES, InvalidTransitionError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExpirationJobResult:
    """Summary of one expiration run."""

    quotes_checked: int = 0
    quotes_expired: int = 0
    warnings: int = 0
    errors: list[str] = field(default_factory=list)
    execution_time_ms: int = 0
    dry_run: bool = False


def expiration_cutoffs(
    now: datetime, settings: QuoteLifecycleSettings
) -> tuple[datetime, datetime]:
    """Return ``(expire_before, warn_before)`` activity cutoffs."""

    expire_before = now - timedelta(days=settings.expiration_days)
    warn_before = now - timedelta(
        days=max(settings.expiration_days - settings.warning_days, 0)
    )
    return expire_before, warn_before


async def run_expiration_job(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    dry_run: bool = False,
    batch_size: int = 100,
    max_quotes: int = 1000,
    settings: QuoteLifecycleSettings | None = None,
) -> ExpirationJobResult:
    """Expire stale quotes and count those approaching expiration.

    Quotes are processed oldest activity first in batches; each batch is
    committed separately so one failing quote does not undo earlier batches.
    A batch whose quotes were edited while the job ran is rolled back and
    reported in ``errors``; later batches still run.
    """

    settings = settings or get_lifecycle_settings()
    now = now or datetime.now(UTC)
    started = time.monotonic()
    result = ExpirationJobResult(dry_run=dry_run)
    expire_before, warn_before = expiration_cutoffs(now, settings)
    expirable = sorted(EXPIRABLE_STATUSES, key=lambda s: s.value)

    candidates = (
        await session.execute(
            select(Quote.id, Quote.last_activity_at)
            .where(
                Quote.status.in_(expirable),
                Quote.expired_at.is_(None),
                Quote.last_activity_at <= warn_before,
            )
            .order_by(Quote.last_activity_at.asc())
            .limit(max_quotes)
        )
    ).all()
    result.quotes_checked = len(candidates)
    logger.info("Quote expiration: %s candidate quotes", len(candidates))

    step = max(batch_size, 1)
    for offset in range(0, len(candidates), step):
        due: list[UUID] = []
        for quote_id, last_activity_at in candidates[offset : offset + step]:
            if _as_utc(last_activity_at) > expire_before:
                result.warnings += 1
            else:
                due.append(quote_id)
        if dry_run:
            result.quotes_expired += len(due)
            continue
        if due:
            await _expire_batch(session, due, result, settings, now, expirable)

    result.execution_time_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        "Quote expiration finished: %s expired, %s warnings, %s errors (dry_run=%s)",
        result.quotes_expired,
        result.warnings,
        len(result.errors),
        dry_run,
    )
    return result


async def _expire_batch(
    session: AsyncSession,
    quote_ids: list[UUID],
    result: ExpirationJobResult,
    settings: QuoteLifecycleSettings,
    now: datetime,
    expirable: list[QuoteStatus],
) -> None:
    stmt: Select[tuple[Quote]] = select(Quote).where(
        Quote.id.in_(quote_ids), Quote.status.in_(expirable)
    )
    quotes = list((await session.execute(stmt)).scalars().all())
    expired = 0
    try:
        for quote in quotes:
            try:
                await quote_service.transition_status(
                    session,
                    quote=quote,
                    target=QuoteStatus.EXPIRED,
                    user=None,
                    reason=(
                        f"Quote auto-expired after {settings.expiration_days} days "
                        "without activity"
                    ),
                    system=True,
                    now=now,
                    commit=False,
                )
            except InvalidTransitionError as exc:
                result.errors.append(f"Error processing quote {quote.id}: {exc}")
                logger.warning("Could not expire quote %s: %s", quote.id, exc)
                continue
            expired += 1
        await session.commit()
    except StaleDataError:
        await session.rollback()
        for quote_id in quote_ids:
            result.errors.append(
                f"Error processing quote {quote_id}: modified while expiring; batch skipped"
            )
        logger.warning("Quote expiration batch %s skipped after a concurrent edit", quote_ids)
        return
    result.quotes_expired += expired


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
