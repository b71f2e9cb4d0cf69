"""Quote builder API: creation, auto-save, lifecycle and preview."""
from __future__ import annotations

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.db.session import get_sessionmaker
from app.models import AuditEvent
from conftest import authenticate

pytestmark = pytest.mark.asyncio

EXAM = ["new-patient", "routine-exam", "optomap"]
GLASSES = {
    "frame_source": "manual",
    "frame_brand": "Oakley",
    "frame_price": "100",
    "lens_type": "single-vision",
}


def _money(value: str) -> Decimal:
    return Decimal(value)


async def _create_quote(client: AsyncClient, headers, context, **overrides) -> dict:
    payload = {
        "customer_id": str(context["insured_customer_id"]),
        "location_id": str(context["location_id"]),
        "exam_services": EXAM,
    }
    payload.update(overrides)
    response = await client.post("/api/v1/quotes", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_quote_prices_with_insurance_snapshot(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]

    quote = await _create_quote(client, headers, app_context)

    assert quote["status"] == "building"
    assert quote["insurance_carrier"] == "VSP"
    assert _money(quote["subtotal"]) == Decimal("195.00")
    assert _money(quote["insurance_discount"]) == Decimal("125.00")
    assert _money(quote["tax"]) == Decimal("15.60")
    assert _money(quote["total"]) == Decimal("85.60")
    assert quote["pricing_breakdown"]["exam_errors"] == []


async def test_cash_quote_when_insurance_declined(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]

    quote = await _create_quote(client, headers, app_context, use_insurance=False)

    assert quote["insurance_carrier"] is None
    assert _money(quote["insurance_discount"]) == Decimal("0.00")
    assert _money(quote["total"]) == Decimal("210.60")


async def test_stale_auto_save_is_rejected(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]
    quote = await _create_quote(client, headers, app_context)
    revision = quote["revision"]

    first = await client.patch(
        f"/api/v1/quotes/{quote['id']}/selections",
        json={"eyeglasses": GLASSES, "expected_revision": revision},
        headers=headers,
    )
    assert first.status_code == 200, first.text
    saved = first.json()
    assert saved["revision"] == revision + 1
    assert _money(saved["subtotal"]) == Decimal("375.00")

    stale = await client.patch(
        f"/api/v1/quotes/{quote['id']}/selections",
        json={"manual_discount": "10", "expected_revision": revision},
        headers=headers,
    )
    assert stale.status_code == 409

    current = await client.get(f"/api/v1/quotes/{quote['id']}", headers=headers)
    assert _money(current.json()["manual_discount"]) == Decimal("0.00")


async def test_manual_garbage_values_count_as_zero(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]
    quote = await _create_quote(client, headers, app_context, exam_services=[])

    response = await client.patch(
        f"/api/v1/quotes/{quote['id']}/selections",
        json={
            "contacts": {"price_per_box": "abc", "number_of_boxes": "2"},
            "manual_discount": "lots",
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert _money(body["subtotal"]) == Decimal("0.00")
    assert _money(body["total"]) == Decimal("0.00")


async def test_lifecycle_and_history(app_context: dict[str, object], db_url: str) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]
    quote = await _create_quote(client, headers, app_context)
    quote_url = f"/api/v1/quotes/{quote['id']}"

    for target in ("draft", "presented", "signed"):
        response = await client.post(
            f"{quote_url}/status", json={"status": target}, headers=headers
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == target

    locked = await client.patch(
        f"{quote_url}/selections", json={"exam_services": ["iwellness"]}, headers=headers
    )
    assert locked.status_code == 409

    cancel = await client.post(
        f"{quote_url}/status", json={"status": "cancelled"}, headers=headers
    )
    assert cancel.status_code == 409

    history = await client.get(f"{quote_url}/history", headers=headers)
    assert history.status_code == 200
    body = history.json()
    assert [event["to_status"] for event in body["events"]] == [
        "building",
        "draft",
        "presented",
        "signed",
    ]
    assert body["next_statuses"] == ["completed"]

    manager_headers = await authenticate(client, app_context["manager_email"])  # type: ignore[arg-type]
    cancel = await client.post(
        f"{quote_url}/status",
        json={"status": "cancelled", "reason": "Customer changed their mind"},
        headers=manager_headers,
    )
    assert cancel.status_code == 200
    assert cancel.json()["cancelled_at"] is not None

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        events = (
            await session.execute(
                select(AuditEvent).where(AuditEvent.event_type == "quote.status_changed")
            )
        ).scalars().all()
    assert len(events) == 4
    assert "business_rule" in {event.payload["category"] for event in events}


async def test_expired_status_is_system_only(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]
    quote = await _create_quote(client, headers, app_context)
    await client.post(
        f"/api/v1/quotes/{quote['id']}/status", json={"status": "draft"}, headers=headers
    )

    response = await client.post(
        f"/api/v1/quotes/{quote['id']}/status", json={"status": "expired"}, headers=headers
    )
    assert response.status_code == 409


async def test_empty_quote_cannot_be_drafted(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]
    quote = await _create_quote(client, headers, app_context, exam_services=[])

    response = await client.post(
        f"/api/v1/quotes/{quote['id']}/status", json={"status": "draft"}, headers=headers
    )
    assert response.status_code == 409
    assert "at least one service" in response.json()["detail"]


async def test_unknown_quote_is_not_found(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]

    response = await client.get(
        "/api/v1/quotes/00000000-0000-0000-0000-000000000000", headers=headers
    )
    assert response.status_code == 404


async def test_pricing_preview(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]

    response = await client.post(
        "/api/v1/pricing/preview",
        json={
            "customer_id": str(app_context["insured_customer_id"]),
            "exam_services": ["routine-exam", "optomap"],
            "tax_rate": "0",
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert _money(body["totals"]["subtotal"]) == Decimal("195.00")
    assert _money(body["totals"]["insurance_discount"]) == Decimal("125.00")
    assert _money(body["totals"]["total"]) == Decimal("70.00")
    assert "Patient type is required" in body["exam_errors"]


async def test_catalog_listing_and_publish(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    associate = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]
    manager = await authenticate(client, app_context["manager_email"])  # type: ignore[arg-type]

    default = await client.get("/api/v1/catalog", headers=associate)
    assert default.status_code == 200
    assert default.json()["version"] == "default-1"

    option = {
        "code": "routine-exam",
        "name": "Routine Exam",
        "price": "160",
        "layer": "exam",
        "category": "exam-type",
        "insurance_covered": True,
        "copay": "25",
    }
    forbidden = await client.put(
        "/api/v1/catalog", json={"options": [option]}, headers=associate
    )
    assert forbidden.status_code == 403

    published = await client.put(
        "/api/v1/catalog", json={"options": [option]}, headers=manager
    )
    assert published.status_code == 201, published.text
    assert published.json()["version"] == "account-1"

    preview = await client.post(
        "/api/v1/pricing/preview",
        json={"exam_services": ["routine-exam"], "tax_rate": "0"},
        headers=associate,
    )
    assert _money(preview.json()["totals"]["subtotal"]) == Decimal("160.00")
    assert preview.json()["catalog_version"] == "account-1"
