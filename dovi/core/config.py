from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load .env early for local development
load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./dovi.db")

    # Security
    app_secret_key: str = os.getenv("APP_SECRET_KEY", "dev-secret-change-me")
    access_token_exp_minutes: int = int(os.getenv("ACCESS_TOKEN_EXP_MINUTES", str(60 * 24)))

    # CORS, comma-separated
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    # Review submission limits
    review_cooldown_minutes: int = int(os.getenv("REVIEW_COOLDOWN_MINUTES", "60"))
    reviews_per_window: int = int(os.getenv("REVIEWS_PER_WINDOW", "5"))
    review_window_hours: int = int(os.getenv("REVIEW_WINDOW_HOURS", "24"))
    min_review_length: int = int(os.getenv("MIN_REVIEW_LENGTH", "10"))

    # Per-IP throttling of /auth endpoints
    auth_rate_limit: int = int(os.getenv("AUTH_RATE_LIMIT", "10"))
    auth_rate_window_seconds: int = int(os.getenv("AUTH_RATE_WINDOW_SECONDS", "60"))

    # Read caches
    company_cache_ttl_seconds: int = int(os.getenv("COMPANY_CACHE_TTL_SECONDS", "60"))

    # Frontend revalidation hook (POST {url}?tag=...). Empty disables it.
    revalidate_url: str = os.getenv("REVALIDATE_URL", "")
    revalidate_secret: str = os.getenv("REVALIDATE_SECRET", "")
    revalidate_timeout_seconds: float = float(os.getenv("REVALIDATE_TIMEOUT_SECONDS", "5"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "./logs")

    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
