"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from typing import List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application Configuration
    # ================================
    APP_NAME: str = "QASkills Consent"
    APP_ENV: Literal["development", "testing", "staging", "production"] = "development"
    DEBUG: bool = True
    SECRET_KEY: str = Field(..., min_length=32)

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    # Public site that hosts the unsubscribe page linked from emails
    PUBLIC_BASE_URL: str = "https://qaskills.sh"

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in v.split(",")]

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(..., description="PostgreSQL connection string")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # Redis Configuration
    # ================================
    REDIS_URL: str = "redis://redis:6379/0"

    # ================================
    # JWT Configuration (dashboard sessions)
    # ================================
    JWT_SECRET_KEY: str = Field(..., min_length=32)
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # ================================
    # Unsubscribe Tokens
    # ================================
    # Signing key shared with the mailer that issues footer links.
    # CRON_SECRET is accepted as a fallback, matching the mailer's lookup order.
    UNSUBSCRIBE_SECRET: Optional[str] = None
    CRON_SECRET: Optional[str] = None
    UNSUBSCRIBE_TOKEN_MAX_AGE_DAYS: int = 30

    @property
    def unsubscribe_signing_secret(self) -> Optional[str]:
        """Secret used to sign and verify unsubscribe tokens, if configured."""
        return self.UNSUBSCRIBE_SECRET or self.CRON_SECRET or None

    # ================================
    # Rate Limiting
    # ================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_UNSUBSCRIBE_PER_MINUTE: int = 20  # Per client IP
    # Reverse proxies in front of the app that append to X-Forwarded-For.
    # 0 ignores forwarding headers and keys on the socket peer.
    TRUSTED_PROXY_COUNT: int = 0

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running under the test suite."""
        return self.APP_ENV == "testing"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"


# Global settings instance
settings = Settings()
