from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Postgres settings
    DATABASE_URL: str = "postgresql://localhost:5432/agency_ops"

    # Auth settings
    AUTH_JWKS_URL: str | None = None
    AUTH_AUDIENCE: str = "authenticated"
    PLATFORM_ADMIN_USER_IDS: str = ""

    # Public app URL used in onboarding links
    APP_BASE_URL: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("APP_BASE_URL", "NEXT_PUBLIC_APP_URL"),
    )

    # Cron endpoint shared secret (unset = open, for local development)
    CRON_SECRET: str | None = None

    # Resend settings
    RESEND_API_KEY: str | None = None
    RESEND_FROM_EMAIL: str | None = None
    RESEND_REPLY_TO: str | None = None
    EMAIL_FROM_NAME: str = "ClientFlow"

    # =================================================================
    # REMINDER JOB SETTINGS
    # =================================================================
    REMINDER_BATCH_LIMIT: int = 100
    REMINDER_JOB_INTERVAL_MINUTES: int = 60
    REMINDER_RETENTION_DAYS: int = 90
    REMINDER_CLAIM_LEASE_MINUTES: int = 15

    # =================================================================
    # DATABASE POOL SETTINGS - Simple and configurable
    # =================================================================
    DB_POOL_MIN_SIZE: int = 3
    DB_POOL_MAX_SIZE: int = 12
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def app_base_url(self) -> str:
        """Base URL without a trailing slash."""
        return self.APP_BASE_URL.rstrip("/")

    def platform_admin_ids(self) -> set[str]:
        """Parse the comma-separated PLATFORM_ADMIN_USER_IDS value."""
        return {uid.strip() for uid in self.PLATFORM_ADMIN_USER_IDS.split(",") if uid.strip()}

    def email_configured(self) -> bool:
        return bool(self.RESEND_API_KEY and self.RESEND_FROM_EMAIL)

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            # More conservative for local development
            config.update(
                {
                    "min_size": 1,
                    "max_size": 4,
                    "timeout": 15.0,
                }
            )

        return config


settings = Settings()
