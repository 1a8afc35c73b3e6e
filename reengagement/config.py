from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"

DEFAULT_ONESIGNAL_API_URL = "https://onesignal.com/api/v1/notifications"


class ConfigurationError(Exception):
    """Raised when a required setting is missing at invocation time."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Supabase settings
    SUPABASE_DB_URL: str | None = None

    # OneSignal settings
    ONESIGNAL_APP_ID: str | None = None
    ONESIGNAL_REST_API_KEY: str | None = None
    ONESIGNAL_API_URL: str = DEFAULT_ONESIGNAL_API_URL
    ONESIGNAL_REQUEST_TIMEOUT: float = 10.0

    # Re-engagement settings
    REENGAGEMENT_INACTIVITY_DAYS: int = 7
    REENGAGEMENT_MIN_INTERVAL_DAYS: int = 7
    REENGAGEMENT_JOB_INTERVAL_MINUTES: int = 1440  # once a day
    REENGAGEMENT_TRIGGER_SECRET: str | None = None

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 4
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def missing_required(self) -> list[str]:
        """Names of required settings that are unset or blank."""
        required = {
            "ONESIGNAL_APP_ID": self.ONESIGNAL_APP_ID,
            "ONESIGNAL_REST_API_KEY": self.ONESIGNAL_REST_API_KEY,
            "SUPABASE_DB_URL": self.SUPABASE_DB_URL,
        }
        return [name for name, value in required.items() if not value]

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        The job touches few rows per run, so the pool stays small everywhere.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 2, "timeout": 15.0})

        return config


@dataclass(frozen=True, slots=True)
class ReEngagementConfig:
    """Validated configuration handed to the re-engagement pipeline."""

    onesignal_app_id: str
    onesignal_api_key: str
    onesignal_api_url: str = DEFAULT_ONESIGNAL_API_URL
    request_timeout: float = 10.0
    inactivity_threshold: timedelta = timedelta(days=7)
    cooldown_threshold: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReEngagementConfig":
        missing = settings.missing_required()
        if missing:
            raise ConfigurationError(
                f"Missing configuration: {', '.join(missing)}. "
                "Set them in the environment or .env.local.",
                missing=missing,
            )

        return cls(
            onesignal_app_id=settings.ONESIGNAL_APP_ID,
            onesignal_api_key=settings.ONESIGNAL_REST_API_KEY,
            onesignal_api_url=settings.ONESIGNAL_API_URL,
            request_timeout=settings.ONESIGNAL_REQUEST_TIMEOUT,
            inactivity_threshold=timedelta(days=settings.REENGAGEMENT_INACTIVITY_DAYS),
            cooldown_threshold=timedelta(days=settings.REENGAGEMENT_MIN_INTERVAL_DAYS),
        )


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process; override this dependency in tests."""
    return Settings()
