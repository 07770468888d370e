# app/core/config.py
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string)
      - JWT_SECRET (signs access tokens, >= 32 chars)
      - REFRESH_SECRET (signs refresh tokens, >= 32 chars)

    Optional (features degrade to errors at first use when missing):
      - REDIS_URL
      - GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET / GOOGLE_REDIRECT_URL
      - STRIPE_SECRET_KEY / STRIPE_WEBHOOK_SECRET
    """

    PROJECT_NAME: str = "E-commerce Backend"
    API_V1_STR: str = "/v1"

    # DB
    DATABASE_URL: str

    # Token signing
    JWT_SECRET: str
    REFRESH_SECRET: str
    ISSUER: str = "ecom-backend"
    AUDIENCE: str = "ecom-frontend"

    # Key-value cache (refresh tokens, OAuth state, guest carts)
    REDIS_URL: str | None = None

    # Google OAuth
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REDIRECT_URL: str = "http://localhost:8080/v1/auth/google/callback"

    # Where the browser lands after an OAuth round trip
    FRONTEND_URL: str = "http://localhost:3000"

    # Stripe
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None

    # Cookies are Secure by default; disable only for local http testing
    COOKIE_SECURE: bool = True

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("JWT_SECRET", "REFRESH_SECRET")
    @classmethod
    def secret_long_enough(cls, v: str) -> str:
        if len(v) < MIN_SECRET_LENGTH:
            raise ValueError(f"secret must be at least {MIN_SECRET_LENGTH} characters")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
