# backend/tripbooking/core/config.py
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Application settings, read from the environment and backend/.env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    project_name: str = BRAND_NAME
    api_v1_prefix: str = "/api/v1"
    environment: str = Field(default="development")
    is_testing: bool = False

    # Database
    database_url: str = "sqlite:///./tripbooking.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 10
    db_statement_timeout_ms: int = 15000
    db_connect_max_attempts: int = 5
    db_connect_backoff_seconds: float = 0.5
    db_connect_backoff_cap_seconds: float = 10.0

    # Security
    secret_key: SecretStr = SecretStr("change-me-in-production")
    algorithm: str = "HS256"

    # Payments
    stripe_secret_key: Optional[SecretStr] = None
    stripe_timeout_seconds: float = 8.0
    currency: str = "usd"

    # Email
    resend_api_key: Optional[str] = None
    from_email: str = f"{BRAND_NAME} <bookings@tripbooking.example>"

    # Background work
    redis_url: str = "redis://localhost:6379/0"
    notification_batch_size: int = 50
    notification_max_attempts: int = 5
    notification_visibility_timeout_seconds: float = 600.0
    notification_poll_seconds: float = 30.0

    # Trips
    trip_timezone: str = "UTC"

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return (value or "development").strip().lower()

    @field_validator("db_connect_max_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        return max(1, value)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def use_fake_gateway(self) -> bool:
        """Fake gateway is only allowed outside production and without a Stripe key."""
        return self.stripe_secret_key is None and not self.is_production

    def get_database_url(self) -> str:
        return self.database_url


settings = Settings()
