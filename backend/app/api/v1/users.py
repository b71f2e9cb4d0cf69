"""Staff user management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.api.deps import CurrentUser, ManagerUser, SessionDep
from app.models.user import User, UserRole
from app.schemas.user import UserCreate, UserRead
from app.services import user_service

router = APIRouter()

_ROLE_PRIORITY: dict[UserRole, int] = {
    UserRole.ADMIN: 4,
    UserRole.MANAGER: 3,
    UserRole.OPTOMETRIST: 2,
    UserRole.SALES_ASSOCIATE: 1,
}


def _assert_assignable_role(actor: User, target_role: UserRole) -> None:
    if _ROLE_PRIORITY[target_role] > _ROLE_PRIORITY[actor.role]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Cannot assign higher role"
        )


@router.get("/me", response_model=UserRead, summary="Current user profile")
async def read_current_user(current_user: CurrentUser) -> UserRead:
    """Return the authenticated user's profile."""
    return UserRead.model_validate(current_user)


@router.get("", response_model=list[UserRead], summary="List users")
async def list_users(
    session: SessionDep,
    current_user: ManagerUser,
    skip: int = 0,
    limit: int = 50,
) -> list[UserRead]:
    result = await session.execute(
        select(User)
        .where(User.account_id == current_user.account_id)
        .order_by(User.email)
        .offset(skip)
        .limit(min(limit, 100))
    )
    return [UserRead.model_validate(user) for user in result.scalars().all()]


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create staff user",
)
async def create_user(
    payload: UserCreate,
    session: SessionDep,
    current_user: ManagerUser,
) -> UserRead:
    if payload.account_id != current_user.account_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Cannot create users for another account"
        )
    _assert_assignable_role(current_user, payload.role)
    try:
        user = await user_service.create_user(session, payload)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered"
        ) from exc
    return UserRead.model_validate(user)
