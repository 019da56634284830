"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Database
    # ======================
    DATABASE_URL: str = "sqlite+aiosqlite:///./fundtracker.db"
    AUTO_CREATE_TABLES: bool = True

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CONFIG_DIR: str = "config"

    # ======================
    # Market Data
    # ======================
    MARKET_DATA_PROVIDER: str = "yfinance"
    MARKET_DATA_CACHE_TTL: int = 60
    FX_CACHE_TTL: int = 300
    MARKET_OVERVIEW_CACHE_TTL: int = 300

    # Borsa Istanbul session (local time)
    SESSION_OPEN_HOUR: int = 10
    SESSION_OPEN_MINUTE: int = 0
    SESSION_CLOSE_HOUR: int = 18
    SESSION_CLOSE_MINUTE: int = 0
    SESSION_CUTOFF_HOUR: int = 18
    SESSION_CUTOFF_MINUTE: int = 10
    # Spacing of the flat series drawn for manually priced holdings
    MANUAL_SAMPLE_INTERVAL_MINUTES: int = 5

    # ======================
    # Scheduler
    # ======================
    SCHEDULER_ENABLED: bool = False
    SNAPSHOT_INTERVAL_MINUTES: int = 5

    # ======================
    # Timezone
    # ======================
    TIMEZONE: str = "Europe/Istanbul"

    # ======================
    # Logging
    # ======================
    LOG_FILE: str = "logs/app.log"

    # ======================
    # Redis
    # ======================
    REDIS_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )


settings = Settings()
