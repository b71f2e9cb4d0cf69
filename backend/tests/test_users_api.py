"""Staff user endpoints and role checks."""
from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import authenticate

pytestmark = pytest.mark.asyncio


async def test_current_user_profile(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["associate_email"])  # type: ignore[arg-type]

    response = await client.get("/api/v1/users/me", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["email"] == app_context["associate_email"]
    assert body["role"] == "sales_associate"


async def test_manager_creates_associate_but_not_admin(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await authenticate(client, app_context["manager_email"])  # type: ignore[arg-type]
    payload = {
        "email": "optician@example.com",
        "first_name": "Avery",
        "last_name": "Optician",
        "password": "Sup3rSecret!",
        "account_id": str(app_context["account_id"]),
        "role": "sales_associate",
    }

    created = await client.post("/api/v1/users", json=payload, headers=headers)
    assert created.status_code == 201, created.text

    duplicate = await client.post("/api/v1/users", json=payload, headers=headers)
    assert duplicate.status_code == 400

    escalated = await client.post(
        "/api/v1/users",
        json={**payload, "email": "boss@example.com", "role": "admin"},
        headers=headers,
    )
    assert escalated.status_code == 403

    listing = await client.get("/api/v1/users", headers=headers)
    assert {user["email"] for user in listing.json()} == {
        "associate@example.com",
        "manager@example.com",
        "optician@example.com",
    }

    new_headers = await authenticate(client, "optician@example.com", "Sup3rSecret!")
    assert (await client.get("/api/v1/users", headers=new_headers)).status_code == 403


async def test_missing_token_is_rejected(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.get("/api/v1/quotes")
    assert response.status_code == 401
