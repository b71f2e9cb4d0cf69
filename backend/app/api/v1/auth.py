"""Authentication endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from app.api.deps import SessionDep
from app.models.user import User
from app.schemas.auth import Token
from app.services import audit_service
from app.services.auth_service import authenticate_user, create_access_token_for_user

router = APIRouter()


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _event_payload_for_user(user: User) -> dict[str, str]:
    return {"user_id": str(user.id), "role": user.role.value}


@router.post("/token", response_model=Token, summary="Obtain access token")
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: SessionDep,
    request: Request,
) -> Token:
    """Validate credentials and issue a bearer token."""
    user = await authenticate_user(
        session, email=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token_for_user(user)
    await audit_service.record_event(
        session,
        account_id=user.account_id,
        user_id=user.id,
        event_type="auth.login",
        description="Successful login",
        payload=_event_payload_for_user(user),
        ip_address=_client_ip(request),
    )
    return Token(access_token=access_token)

