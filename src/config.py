# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application configuration via pydantic-settings.

Values are read from environment variables (or a local .env file).
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the admin console.

    Usage:
        from src.config import settings
        settings.database_url
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    database_url: str = Field(
        default="sqlite:///./rbac_admin.db",
        description="SQLAlchemy database URL",
    )

    session_expiry_days: int = Field(default=7, ge=1)
    session_cookie_name: str = Field(default="session")
    cookie_secure: bool = Field(default=False)
    cors_origins: list[str] = Field(default=["http://localhost:5173"])
    trusted_proxy: bool = Field(
        default=False,
        description="Take the client IP from X-Forwarded-For",
    )

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    geolocation_enabled: bool = Field(default=True)
    geolocation_api_url: str = Field(default="http://ip-api.com")
    geolocation_timeout: float = Field(default=5.0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            msg = f"Invalid log level: {v}. Must be one of {valid}"
            raise ValueError(msg)
        return upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


settings = Settings()
