"""Role helper for explicit authorization checks."""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import HTTPException, status

from app.models.user import User, UserRole


def require_roles(
    user: User,
    allowed: Iterable[UserRole],
    *,
    detail: str = "Insufficient permissions",
) -> None:
    """Raise HTTP 403 if a user is not a member of the allowed role set."""

    if user.role not in set(allowed):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


__all__ = ["require_roles"]
