"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str
    DB_ECHO: bool = False

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Balance projection
    # Lookahead applied by mutating routes when they trigger a recompute
    RECALCULATION_HORIZON_MONTHS: int = 6

    # Recurring rule expansion
    RECURRING_MAX_OCCURRENCES: int = 3650
    WORKING_DAY_MAX_SHIFT: int = 5
    DEFAULT_PREVIEW_LIMIT: int = 10

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
