"""Bootstrap helpers for default data."""

from __future__ import annotations

import logging
import re

from sqlalchemy import select

from app.core.config import get_settings
from app.db.session import get_sessionmaker
from app.models import Account, User, UserRole, UserStatus
from app.schemas.user import UserCreate
from app.services.user_service import create_user

logger = logging.getLogger(__name__)


def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "account"


async def ensure_default_admin() -> None:
    """Create the configured bootstrap admin if one does not yet exist.

    Does nothing unless ``BOOTSTRAP_ADMIN_EMAIL`` and
    ``BOOTSTRAP_ADMIN_PASSWORD`` are set.
    """

    settings = get_settings()
    email = settings.bootstrap_admin_email
    password = settings.bootstrap_admin_password
    if not email or not password:
        return

    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        existing = await session.execute(select(User).where(User.email == email.lower()))
        if existing.scalar_one_or_none() is not None:
            return

        account_result = await session.execute(
            select(Account).order_by(Account.created_at.asc()).limit(1)
        )
        account = account_result.scalar_one_or_none()
        if account is None:
            account = Account(
                name=settings.bootstrap_account_name,
                slug=_slugify(settings.bootstrap_account_name),
            )
            session.add(account)
            await session.commit()
            await session.refresh(account)

        payload = UserCreate(
            account_id=account.id,
            email=email,
            password=password,
            first_name="Practice",
            last_name="Administrator",
            role=UserRole.ADMIN,
            status=UserStatus.ACTIVE,
        )
        await create_user(session, payload)
        logger.info("Bootstrap administrator %s created", email.lower())
