"""
Configuration management for the Order Service.

Loads settings from .env via pydantic-settings.

Notes:
    - Downstream timeouts default to 5s connect / 5s read.
    - validate_production_settings() enforces strict CORS and HTTPS
      downstream URLs in production.
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/orders.db"

    # ── Downstream services ─────────────────────────────────────────
    user_service_url: str = "http://localhost:8080"
    product_service_url: str = "http://localhost:8082"

    # ── HTTP client behaviour ───────────────────────────────────────
    http_connect_timeout_seconds: float = 5.0
    http_read_timeout_seconds: float = 5.0
    catalog_retry_attempts: int = 3        # total attempts, including the first
    retry_backoff_seconds: float = 0.2     # exponential multiplier
    retry_backoff_max_seconds: float = 2.0

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            for name in ("user_service_url", "product_service_url"):
                if not getattr(self, name).startswith("https://"):
                    raise ValueError(
                        f"{name.upper()} must use https:// in production."
                    )
            if self.catalog_retry_attempts < 1:
                raise ValueError("CATALOG_RETRY_ATTEMPTS must be at least 1.")
            logger.info("Production settings validated")
        else:
            warnings = []
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            if self.database_url.startswith("sqlite"):
                warnings.append("DATABASE_URL points at SQLite")
            for w in warnings:
                logger.warning(f"{w}")


# Global settings instance
settings = Settings()
