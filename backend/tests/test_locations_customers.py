"""Location and customer administration."""
from __future__ import annotations

from decimal import Decimal

import pytest
from httpx import AsyncClient

from conftest import authenticate

pytestmark = pytest.mark.asyncio


async def test_manager_manages_locations(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["manager_email"])  # type: ignore[arg-type]

    create_resp = await client.post(
        "/api/v1/locations",
        json={"name": "Downtown", "timezone": "America/Chicago", "tax_rate": "0.0725"},
        headers=headers,
    )
    assert create_resp.status_code == 201, create_resp.text
    location = create_resp.json()
    assert Decimal(location["tax_rate"]) == Decimal("0.0725")

    update_resp = await client.patch(
        f"/api/v1/locations/{location['id']}",
        json={"tax_rate": "0.07"},
        headers=headers,
    )
    assert update_resp.status_code == 200
    assert Decimal(update_resp.json()["tax_rate"]) == Decimal("0.07")

    list_resp = await client.get("/api/v1/locations", headers=headers)
    assert {item["name"] for item in list_resp.json()} == {"Cedar Rapids", "Downtown"}


async def test_location_rejects_unknown_timezone(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["manager_email"])  # type: ignore[arg-type]

    response = await client.post(
        "/api/v1/locations",
        json={"name": "Nowhere", "timezone": "Mars/Olympus"},
        headers=headers,
    )
    assert response.status_code == 422


async def test_associate_cannot_create_location(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]

    response = await client.post(
        "/api/v1/locations", json={"name": "Rogue", "timezone": "UTC"}, headers=headers
    )
    assert response.status_code == 403


async def test_customer_insurance_member_id_is_masked(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]

    create_resp = await client.post(
        "/api/v1/customers",
        json={
            "first_name": "Avery",
            "last_name": "Plan",
            "insurance_carrier": "EyeMed",
            "insurance_member_id": "EM-99887766",
            "insurance_benefits": {"copays": {"exam-type": "10"}},
        },
        headers=headers,
    )
    assert create_resp.status_code == 201, create_resp.text
    customer = create_resp.json()
    assert customer["insurance_member_id"] == "*******7766"
    assert customer["insurance_benefits"]["copays"]["exam-type"] == "10"

    search_resp = await client.get(
        "/api/v1/customers", params={"search": "plan"}, headers=headers
    )
    assert [item["id"] for item in search_resp.json()] == [customer["id"]]

    update_resp = await client.patch(
        f"/api/v1/customers/{customer['id']}",
        json={"insurance_carrier": None, "insurance_member_id": None},
        headers=headers,
    )
    assert update_resp.status_code == 200
    assert update_resp.json()["insurance_carrier"] is None


async def test_bad_credentials_rejected(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": app_context["manager_email"], "password": "wrong"},
    )
    assert response.status_code == 401
