"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        DATABASE_URL: PostgreSQL connection string with asyncpg driver.
        APP_URL: Public base URL of the web app, used for Stripe redirects.
        SUPABASE_URL: Supabase project URL; when set, token issuers must match it.
        SUPABASE_JWT_SECRET: Secret used to verify user access tokens.
        ADMIN_EMAIL: Login email of the single admin account.
        ADMIN_PASSWORD: Login password of the single admin account.
        ADMIN_JWT_SECRET: Secret used to sign admin session tokens.
        STRIPE_SECRET_KEY: Stripe API key.
        STRIPE_WEBHOOK_SECRET: Signing secret for the Stripe webhook endpoint.
        COMING_SOON_MODE: Redirect all public pages to /coming-soon.
        ENVIRONMENT: Current environment (development, staging, production).
        DEBUG: Enable debug mode.
        CORS_ORIGINS: List of allowed CORS origins.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert database URL to asyncpg format.

        Supabase and most hosts hand out postgres:// or postgresql://
        but asyncpg requires postgresql+asyncpg://
        """
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        if v.startswith("postgresql://") and "+asyncpg" not in v:
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    APP_URL: str = "http://localhost:3000"

    # Auth
    SUPABASE_URL: str = ""
    SUPABASE_JWT_SECRET: str = ""
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""
    ADMIN_JWT_SECRET: str = ""
    ADMIN_TOKEN_TTL_HOURS: int = 24

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PRICE_STARTER_MONTHLY: str = ""
    STRIPE_PRICE_STARTER_YEARLY: str = ""
    STRIPE_PRICE_PRO_MONTHLY: str = ""
    STRIPE_PRICE_PRO_YEARLY: str = ""
    STRIPE_PRICE_AGENCY_MONTHLY: str = ""
    STRIPE_PRICE_AGENCY_YEARLY: str = ""
    STRIPE_PACK_SMALL_STARTER: str = ""
    STRIPE_PACK_SMALL_PRO: str = ""
    STRIPE_PACK_SMALL_AGENCY: str = ""
    STRIPE_PACK_MEDIUM_STARTER: str = ""
    STRIPE_PACK_MEDIUM_PRO: str = ""
    STRIPE_PACK_MEDIUM_AGENCY: str = ""
    STRIPE_PACK_LARGE_STARTER: str = ""
    STRIPE_PACK_LARGE_PRO: str = ""
    STRIPE_PACK_LARGE_AGENCY: str = ""

    # External services
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    GOOGLE_PAGESPEED_API_KEY: str = ""
    NOTION_API_KEY: str = ""
    NOTION_PAGE_ID: str = ""

    IP_HASH_SALT: str = "webcore-audit"
    COMING_SOON_MODE: bool = False

    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string or comma-separated
            if v.startswith("["):
                import json
                return json.loads(v.replace("'", '"'))
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()


settings = get_settings()
