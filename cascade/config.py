"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost/cascade"

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Accrual
    AMOUNT_DECIMALS: int = 6  # UI precision, override with the mint's decimals

    # Employee-facing countdown before the employer may emergency withdraw
    EMPLOYER_WITHDRAWAL_THRESHOLD_DAYS: int = 30

    # Risk rules
    INACTIVITY_ALERT_DAYS: int = 25
    LOW_RUNWAY_HOURS: int = 72
    HIGH_RUNWAY_HOURS: int = 48
    CRITICAL_RUNWAY_HOURS: int = 24
    CLAWBACK_WINDOW_DAYS: int = 30

    # Alert generation
    ALERT_SINK_TIMEOUT_SECONDS: float = 10.0
    ALERT_SCAN_INTERVAL_MINUTES: int = 15
    ALERT_SCHEDULER_ENABLED: bool = False

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]  # Allow all origins in development
        return [self.FRONTEND_URL, "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True
    )


settings = Settings()
