from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Progress Syncer API"
    APP_VERSION: str = "0.3.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./progress_syncer.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "https://progresssyncer.com",
        "https://app.progresssyncer.com",
    ]

    # Reminders
    REMINDER_POLL_INTERVAL_SECONDS: int = 10
    REMINDER_INITIAL_DELAY_SECONDS: int = 2
    REMINDER_CATCHUP_WINDOW_SECONDS: int = 120
    REMINDER_DEFAULT_TIME: str = "09:00"  # Used when a task has a date but no time
    REMINDER_DEFAULT_NOTIFY_BEFORE_MINUTES: int = 10
    REMINDER_MARKER_TTL_HOURS: int = 24
    REMINDER_TIMEZONE: str = ""  # IANA name, e.g. America/Sao_Paulo. Empty = system local time
    NATIVE_NOTIFICATIONS_ENABLED: bool = True
    CRON_SECRET: str = ""  # Required in X-Cron-Secret header when set

    # Web Push (VAPID)
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_SUBJECT: str = "mailto:support@progresssyncer.com"
    PUSH_TTL_SECONDS: int = 3600

    # Observability (GlitchTip/Sentry)
    GLITCHTIP_DSN: str = ""
    GLITCHTIP_TRACES_SAMPLE_RATE: float = 0.2
    GLITCHTIP_PROFILES_SAMPLE_RATE: float = 0.1

    @property
    def push_enabled(self) -> bool:
        """Check if Web Push is configured."""
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
