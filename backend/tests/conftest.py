"""Test fixtures for the Vision POS backend."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
# base64 of 32 ASCII bytes
os.environ.setdefault(
    "APP_ENCRYPTION_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="
)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from app.core.config import get_settings
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import dispose_engine, get_sessionmaker
from app.main import app
from app.models import Account, Customer, Location, User, UserRole, UserStatus

PASSWORD = "Passw0rd!"


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


async def _seed(db_url: str) -> dict[str, object]:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account = Account(name="Test Optical", slug=f"test-{uuid.uuid4().hex[:8]}")
        session.add(account)
        await session.flush()

        location = Location(
            account_id=account.id,
            name="Cedar Rapids",
            timezone="UTC",
            tax_rate=None,
        )
        session.add(location)

        manager = User(
            account_id=account.id,
            email="manager@example.com",
            hashed_password=get_password_hash(PASSWORD),
            first_name="Casey",
            last_name="Manager",
            role=UserRole.MANAGER,
            status=UserStatus.ACTIVE,
        )
        associate = User(
            account_id=account.id,
            email="associate@example.com",
            hashed_password=get_password_hash(PASSWORD),
            first_name="Jordan",
            last_name="Associate",
            role=UserRole.SALES_ASSOCIATE,
            status=UserStatus.ACTIVE,
        )
        cash_customer = Customer(
            account_id=account.id,
            first_name="Riley",
            last_name="Cash",
            email="riley@example.com",
            insurance_benefits={},
        )
        insured_customer = Customer(
            account_id=account.id,
            first_name="Morgan",
            last_name="Insured",
            insurance_carrier="VSP",
            insurance_member_id="MEMBER-123456",
            insurance_benefits={},
        )
        session.add_all([manager, associate, cash_customer, insured_customer])
        await session.commit()

        return {
            "account_id": account.id,
            "location_id": location.id,
            "manager_id": manager.id,
            "manager_email": manager.email,
            "associate_id": associate.id,
            "associate_email": associate.email,
            "password": PASSWORD,
            "cash_customer_id": cash_customer.id,
            "insured_customer_id": insured_customer.id,
        }


@pytest_asyncio.fixture()
async def seeded(reset_database: None, db_url: str) -> dict[str, object]:
    """Seed an account with staff, a location and two customers."""
    return await _seed(db_url)


@pytest_asyncio.fixture()
async def app_context(seeded: dict[str, object]) -> AsyncIterator[dict[str, object]]:
    """Yield an async client alongside the seeded account data."""
    context = dict(seeded)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context


async def authenticate(client: AsyncClient, email: str, password: str = PASSWORD) -> dict[str, str]:
    """Log in and return bearer headers."""
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
