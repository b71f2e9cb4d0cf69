"""Publish the default price catalog for accounts that have none."""

from __future__ import annotations

import asyncio

from sqlalchemy import select

from app.db.session import get_sessionmaker
from app.models import Account
from app.services import catalog_service


async def seed_catalog() -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        accounts = (await session.execute(select(Account))).scalars().all()
        if not accounts:
            print("No accounts found; nothing to seed.")
            return

        published = 0
        for account in accounts:
            if await catalog_service.latest_version(session, account.id) is not None:
                continue
            catalog = await catalog_service.publish_catalog(
                session,
                account_id=account.id,
                options=catalog_service.DEFAULT_CATALOG.options,
            )
            print(f"{account.slug}: published catalog {catalog.version}")
            published += 1

        print(f"Seed complete: {published} catalogs published.")


if __name__ == "__main__":
    asyncio.run(seed_catalog())
