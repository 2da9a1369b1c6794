"""Application settings loaded from environment variables.

Environment Configuration:
    HUDDLE_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Database connection string (required)
    HUDDLE_INTERNAL_SECRET: Internal API secret (required in staging/prod)

Auth Configuration (required outside the test environment):
    AUTH_JWKS_URL: Full URL to the identity provider's JWKS endpoint
    AUTH_ISSUER: Expected JWT issuer (trailing slash stripped)
    AUTH_AUDIENCES: Comma-separated list of allowed audiences

Storage Configuration (optional; an in-memory fake is used when unset):
    SUPABASE_URL: Supabase project URL
    SUPABASE_SERVICE_KEY: Supabase service role key
    STORAGE_BUCKET: Bucket holding message images
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - DATABASE_URL is always required
    - AUTH_JWKS_URL, AUTH_ISSUER, AUTH_AUDIENCES are required except in test
    - HUDDLE_INTERNAL_SECRET is required in staging and prod only
    """

    huddle_env: Environment = Field(default=Environment.LOCAL, alias="HUDDLE_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    huddle_internal_secret: str | None = Field(default=None, alias="HUDDLE_INTERNAL_SECRET")

    # JWT verification
    auth_jwks_url: str | None = Field(default=None, alias="AUTH_JWKS_URL")
    auth_issuer: str | None = Field(default=None, alias="AUTH_ISSUER")
    auth_audiences: str | None = Field(default=None, alias="AUTH_AUDIENCES")

    # Blob storage for message images
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_KEY")
    storage_bucket: str = Field(default="uploads", alias="STORAGE_BUCKET")
    signed_url_expiry_s: int = Field(default=300, alias="SIGNED_URL_EXPIRY_S")  # 5 minutes

    # Logging
    log_json: bool = Field(default=True, alias="LOG_JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure environment-dependent settings are present."""
        if self.huddle_env != Environment.TEST:
            missing_auth = []
            if not self.auth_jwks_url:
                missing_auth.append("AUTH_JWKS_URL")
            if not self.auth_issuer:
                missing_auth.append("AUTH_ISSUER")
            if not self.auth_audiences:
                missing_auth.append("AUTH_AUDIENCES")

            if missing_auth:
                raise ValueError(f"Missing required auth settings: {', '.join(missing_auth)}")

        if self.huddle_env in (Environment.STAGING, Environment.PROD):
            if not self.huddle_internal_secret:
                raise ValueError(
                    f"HUDDLE_INTERNAL_SECRET is required for HUDDLE_ENV={self.huddle_env.value}"
                )

        return self

    @property
    def requires_internal_header(self) -> bool:
        """Whether requests must include the internal secret header."""
        return self.huddle_env in (Environment.STAGING, Environment.PROD)

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.auth_audiences:
            return [a.strip() for a in self.auth_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.auth_issuer:
            return self.auth_issuer.rstrip("/")
        return None

    @property
    def storage_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
