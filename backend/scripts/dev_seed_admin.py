"""Create a development account, location and admin user."""

from __future__ import annotations

import asyncio
from decimal import Decimal

from sqlalchemy import select

from app.db.session import get_sessionmaker
from app.models import Account, Location, User, UserRole, UserStatus
from app.schemas.user import UserCreate
from app.services.user_service import create_user

EMAIL = "admin@visionpos.local"
PASSWORD = "admin12345"


async def main() -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        existing = await session.execute(select(User).where(User.email == EMAIL))
        if existing.scalar_one_or_none() is not None:
            print(f"User {EMAIL} already exists")
            return

        account = Account(name="Dev Optical", slug="dev-optical")
        session.add(account)
        await session.flush()
        session.add(
            Location(
                account_id=account.id,
                name="Main Street",
                timezone="America/Chicago",
                tax_rate=Decimal("0.0800"),
            )
        )
        await session.commit()

        await create_user(
            session,
            UserCreate(
                email=EMAIL,
                password=PASSWORD,
                first_name="Dev",
                last_name="Admin",
                role=UserRole.ADMIN,
                account_id=account.id,
                status=UserStatus.ACTIVE,
            ),
        )
        print(f"Created account dev-optical and admin {EMAIL} / {PASSWORD}")


if __name__ == "__main__":
    asyncio.run(main())
