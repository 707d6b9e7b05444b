"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./cashflow.db"
    SQL_ECHO: bool = False

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Forecast defaults
    DEFAULT_FORECAST_MONTHS: int = 6
    DEFAULT_RETENTION_RELEASE_DAYS: int = 84

    # Variance matching
    MATCH_AMOUNT_WEIGHT: float = 0.6
    MATCH_TIMING_WEIGHT: float = 0.4
    MATCH_WINDOW_DAYS: int = 30
    MATCH_MIN_CONFIDENCE: float = 0.3
    MATCH_REQUIRE_SAME_PROJECT: bool = False

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
