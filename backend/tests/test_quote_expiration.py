"""Automatic expiration of inactive quotes."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select, update

from app.core.settings import QuoteLifecycleSettings
from app.db.session import get_sessionmaker
from app.models import AuditEvent, Quote, QuoteStatus, QuoteStatusEvent, TransitionCategory
from app.services import quote_service
from app.services.quote_expiration_service import expiration_cutoffs, run_expiration_job

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 3, 31, 15, 0, tzinfo=UTC)


async def _seed_quotes(db_url: str, seeded: dict[str, object]) -> dict[str, object]:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        quotes = {}
        for name, status, age in (
            ("stale_draft", QuoteStatus.DRAFT, 40),
            ("warned_presented", QuoteStatus.PRESENTED, 28),
            ("fresh_draft", QuoteStatus.DRAFT, 5),
            ("old_building", QuoteStatus.BUILDING, 40),
        ):
            quote = Quote(
                account_id=seeded["account_id"],
                location_id=seeded["location_id"],
                customer_id=seeded["cash_customer_id"],
                status=status,
                catalog_version="default-1",
                exam_services=["routine-exam"],
                subtotal=Decimal("150.00"),
                total=Decimal("162.00"),
                patient_responsibility=Decimal("162.00"),
                last_activity_at=NOW - timedelta(days=age),
            )
            session.add(quote)
            quotes[name] = quote
        await session.commit()
        return {name: quote.id for name, quote in quotes.items()}


async def _statuses(db_url: str) -> dict[object, QuoteStatus]:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        rows = (await session.execute(select(Quote.id, Quote.status))).all()
    return {quote_id: status for quote_id, status in rows}


async def test_cutoffs_follow_settings() -> None:
    settings = QuoteLifecycleSettings(expiration_days=30, warning_days=3)
    expire_before, warn_before = expiration_cutoffs(NOW, settings)
    assert expire_before == NOW - timedelta(days=30)
    assert warn_before == NOW - timedelta(days=27)


async def test_expires_stale_quotes_and_counts_warnings(
    seeded: dict[str, object], db_url: str
) -> None:
    ids = await _seed_quotes(db_url, seeded)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        result = await run_expiration_job(session, now=NOW, batch_size=1)

    assert result.quotes_checked == 2
    assert result.quotes_expired == 1
    assert result.warnings == 1
    assert result.errors == []

    statuses = await _statuses(db_url)
    assert statuses[ids["stale_draft"]] is QuoteStatus.EXPIRED
    assert statuses[ids["warned_presented"]] is QuoteStatus.PRESENTED
    assert statuses[ids["fresh_draft"]] is QuoteStatus.DRAFT
    assert statuses[ids["old_building"]] is QuoteStatus.BUILDING

    async with sessionmaker() as session:
        event = (
            await session.execute(
                select(QuoteStatusEvent).where(
                    QuoteStatusEvent.quote_id == ids["stale_draft"]
                )
            )
        ).scalar_one()
        audit = (
            await session.execute(
                select(AuditEvent).where(AuditEvent.event_type == "quote.status_changed")
            )
        ).scalar_one()
    assert event.category is TransitionCategory.SYSTEM_ACTION
    assert event.user_id is None
    assert "30 days" in (event.reason or "")
    assert audit.payload["to"] == "expired"


async def test_dry_run_changes_nothing(seeded: dict[str, object], db_url: str) -> None:
    ids = await _seed_quotes(db_url, seeded)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        result = await run_expiration_job(session, now=NOW, dry_run=True)

    assert result.dry_run is True
    assert result.quotes_expired == 1
    assert result.warnings == 1
    statuses = await _statuses(db_url)
    assert statuses[ids["stale_draft"]] is QuoteStatus.DRAFT


async def test_max_quotes_limits_the_run(seeded: dict[str, object], db_url: str) -> None:
    await _seed_quotes(db_url, seeded)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        result = await run_expiration_job(session, now=NOW, max_quotes=1)

    assert result.quotes_checked == 1
    assert result.quotes_expired == 1
    assert result.warnings == 0


async def test_quote_edited_mid_run_is_reported_and_job_continues(
    seeded: dict[str, object], db_url: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    ids = await _seed_quotes(db_url, seeded)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        later = Quote(
            account_id=seeded["account_id"],
            location_id=seeded["location_id"],
            customer_id=seeded["cash_customer_id"],
            status=QuoteStatus.DRAFT,
            catalog_version="default-1",
            exam_services=["routine-exam"],
            subtotal=Decimal("150.00"),
            total=Decimal("162.00"),
            patient_responsibility=Decimal("162.00"),
            last_activity_at=NOW - timedelta(days=35),
        )
        session.add(later)
        await session.commit()
        later_id = later.id

    original_transition = quote_service.transition_status

    async def transition_after_concurrent_save(session, *, quote, **kwargs):
        if quote.id == ids["stale_draft"]:
            async with sessionmaker() as other:
                await other.execute(
                    update(Quote)
                    .where(Quote.id == quote.id)
                    .values(revision=Quote.revision + 1)
                )
                await other.commit()
        return await original_transition(session, quote=quote, **kwargs)

    monkeypatch.setattr(quote_service, "transition_status", transition_after_concurrent_save)

    async with sessionmaker() as session:
        result = await run_expiration_job(session, now=NOW, batch_size=1)

    assert result.quotes_checked == 3
    assert result.quotes_expired == 1
    assert result.warnings == 1
    assert len(result.errors) == 1
    assert str(ids["stale_draft"]) in result.errors[0]

    statuses = await _statuses(db_url)
    assert statuses[ids["stale_draft"]] is QuoteStatus.DRAFT
    assert statuses[later_id] is QuoteStatus.EXPIRED
