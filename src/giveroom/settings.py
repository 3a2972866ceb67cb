"""Application settings and configuration."""

import sys
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_SECRET_DEFAULTS = {"change-me-in-production", "secret", "your_secret_key"}

# bcrypt cost below this is rejected
MIN_BCRYPT_ROUNDS = 10


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "giveroom"
    env: str = "development"
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    allowed_origins: str = "http://localhost:3000"
    public_base_url: str | None = None  # Used for share links, falls back to request URL

    # Identity
    secret_key: str = "change-me-in-production"
    identity_strategy: Literal["session", "session_record", "token"] = "session"
    token_ttl_minutes: int = Field(default=60, gt=0)
    session_ttl_hours: int = Field(default=24 * 14, gt=0)
    cookie_name: str | None = None  # Overrides the per-strategy default
    cookie_secure: bool = False
    bcrypt_rounds: int = 12

    # Database
    database_url: str = "sqlite:///./giveroom.db"
    database_ssl_require: bool = False
    db_timeout_seconds: float = Field(default=10.0, gt=0)
    storage_max_attempts: int = Field(default=5, ge=1)
    storage_retry_wait_seconds: float = Field(default=0.05, ge=0)

    @field_validator("bcrypt_rounds")
    @classmethod
    def check_bcrypt_rounds(cls, v: int) -> int:
        if v < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"bcrypt_rounds must be at least {MIN_BCRYPT_ROUNDS}")
        return v

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        # Hosting providers still hand out the legacy scheme
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v


# Global settings instance
settings = Settings()

# ── Security validation ──────────────────────────────────────────────
if settings.env == "production":
    if settings.secret_key in _INSECURE_SECRET_DEFAULTS or len(settings.secret_key) < 32:
        print(
            "\n❌  FATAL: SECRET_KEY is insecure or too short (min 32 chars).\n"
            "   Set a strong random value:  openssl rand -hex 32\n",
            file=sys.stderr,
        )
        sys.exit(1)
