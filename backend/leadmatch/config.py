"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://leadmatch:leadmatch123@db:5432/leadmatch"

    # Scheduling
    SCHEDULER_ENABLED: bool = True
    DEFAULT_TIMEZONE: str = "Asia/Kolkata"
    DAILY_SYNC_HOUR: int = 2
    DAILY_SYNC_MINUTE: int = 0
    SWEEP_USER_DELAY_SECONDS: float = 1.0
    DEFAULT_RETRY_ATTEMPTS: int = 3
    DEFAULT_RETRY_DELAY_MINUTES: int = 5

    # Sync
    SYNC_TIMEOUT_SECONDS: float = 120.0
    PROVIDER_RATE_LIMIT_PER_MINUTE: int = 100

    # Matching
    STRICT_STATUS_TRANSITIONS: bool = False
    MATCH_ALGORITHM_VERSION: str = "v2.1"
    DEFAULT_MATCH_LIMIT: int = 100


settings = Settings()
