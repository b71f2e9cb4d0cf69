"""User-related schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator

from app.models.user import UserRole, UserStatus

_ALLOWED_DEV_EMAIL_DOMAINS = {"visionpos.local"}
_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def _validate_relaxed_email(value: str) -> str:
    """Allow placeholder domains (e.g. *.local) while keeping core validation."""

    email = value.strip()
    try:
        return _EMAIL_ADAPTER.validate_python(email)
    except ValueError:
        local_part, _, domain = email.partition("@")
        if local_part and domain:
            if domain.endswith(".local") or domain in _ALLOWED_DEV_EMAIL_DOMAINS:
                return email
        raise


class UserBase(BaseModel):
    """Shared user fields."""

    email: str

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return _validate_relaxed_email(value)

    first_name: str
    last_name: str
    role: UserRole = Field(default=UserRole.SALES_ASSOCIATE)


class UserCreate(UserBase):
    """Payload for creating a user."""

    password: str = Field(min_length=8)
    account_id: uuid.UUID
    status: UserStatus = UserStatus.ACTIVE


class UserRead(UserBase):
    """Serialized user response."""

    id: uuid.UUID
    account_id: uuid.UUID
    status: UserStatus

    model_config = ConfigDict(from_attributes=True)
