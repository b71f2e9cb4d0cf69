"""Application configuration via pydantic settings."""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Vision POS API"
    app_encryption_key: str = Field(..., alias="APP_ENCRYPTION_KEY")
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(..., alias="DATABASE_URL")
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    secret_key: str = Field(..., alias="SECRET_KEY")
    jwt_secret_key: str = Field(default="", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    bootstrap_admin_email: str | None = Field(
        default=None, alias="BOOTSTRAP_ADMIN_EMAIL"
    )
    bootstrap_admin_password: str | None = Field(
        default=None, alias="BOOTSTRAP_ADMIN_PASSWORD"
    )
    bootstrap_account_name: str = Field(
        "Vision POS", alias="BOOTSTRAP_ACCOUNT_NAME"
    )

    default_tax_rate: Decimal = Field(Decimal("0.08"), alias="DEFAULT_TAX_RATE")
    pof_fixed_fee: Decimal = Field(Decimal("45.00"), alias="POF_FIXED_FEE")
    second_pair_same_day_percent: Decimal = Field(
        Decimal("50"), alias="SECOND_PAIR_SAME_DAY_PERCENT"
    )
    second_pair_thirty_day_percent: Decimal = Field(
        Decimal("30"), alias="SECOND_PAIR_THIRTY_DAY_PERCENT"
    )
    second_pair_window_days: int = Field(30, alias="SECOND_PAIR_WINDOW_DAYS")
    second_pair_history_depth: int = Field(5, alias="SECOND_PAIR_HISTORY_DEPTH")
    manager_override_min_reason: int = Field(10, alias="MANAGER_OVERRIDE_MIN_REASON")
    quote_expiration_days: int = Field(30, alias="QUOTE_EXPIRATION_DAYS")
    quote_expiration_warning_days: int = Field(
        3, alias="QUOTE_EXPIRATION_WARNING_DAYS"
    )

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allowlist: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"], alias="CORS_ALLOWLIST"
    )

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
    )

    def model_post_init(self, __context: Any) -> None:
        """Populate JWT secret from the generic secret when not provided."""

        if not self.jwt_secret_key:
            object.__setattr__(self, "jwt_secret_key", self.secret_key)

    @field_validator("cors_allow_origins", "cors_allowlist", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
