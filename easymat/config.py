from __future__ import annotations

import sys
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_DEFAULT_JWT_SECRET = "change-me-in-production-use-long-random-string"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EASYMAT_")

    # Database
    database_url: str = "sqlite:///./easymat.db"
    log_sql: bool = False

    # Server
    environment: str = "development"
    log_level: str = "info"
    log_format: str = "json"  # json | text
    allow_cors_origins: List[str] = ["*"]

    # Identity provider (tokens are issued upstream, verified here)
    jwt_secret: str = _DEFAULT_JWT_SECRET
    jwt_expire_minutes: int = 60 * 24 * 30  # 30 days

    # Per-IP throttling
    rate_limit_enabled: bool = True
    register_rate_limit: str = "5/minute"

    # Photo storage
    storage_dir: str = "media"
    storage_url_prefix: str = "/media"

    # Calendar days for the one-rating-per-day rule (Nairobi is UTC+3, no DST)
    local_utc_offset_hours: int = 3

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str, info) -> str:
        """Refuse to start in production with the default JWT secret."""
        env = info.data.get("environment", "development")
        if env != "development" and v == _DEFAULT_JWT_SECRET:
            print(
                "\nFATAL: EASYMAT_JWT_SECRET is set to the default value.\n"
                "   Use the secret shared with the identity provider.\n",
                file=sys.stderr,
            )
            raise ValueError(
                "JWT secret must be changed from default in non-development environments. "
                "Set EASYMAT_JWT_SECRET env var."
            )
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()


# Module-level singleton for convenience
settings = get_settings()
