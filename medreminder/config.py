import os
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from openai import AsyncOpenAI


class Settings(BaseSettings):
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    # Scheduling
    DEFAULT_TIMEZONE: str = os.getenv("DEFAULT_TIMEZONE", "UTC")
    DOSE_HORIZON_DAYS: int = int(os.getenv("DOSE_HORIZON_DAYS", "7"))
    DEFAULT_MEDICINE_DURATION_DAYS: int = int(os.getenv("DEFAULT_MEDICINE_DURATION_DAYS", "30"))
    UPCOMING_DOSE_LIMIT: int = int(os.getenv("UPCOMING_DOSE_LIMIT", "5"))

    # Prescription extraction
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    OPENAI_VISION_MODEL: str = os.getenv("OPENAI_VISION_MODEL", "gpt-4o")
    MAX_PRESCRIPTION_IMAGE_BYTES: int = int(os.getenv("MAX_PRESCRIPTION_IMAGE_BYTES", str(20 * 1024 * 1024)))

    SESSION_SECRET: Optional[str] = os.getenv("SESSION_SECRET")

    CORS_ORIGINS: list = ["http://localhost:8081", "http://127.0.0.1:8081"]

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    def validate_database_url(self):
        if not self.DATABASE_URL:
            raise ValueError(
                "DATABASE_URL environment variable is required for database operations. "
                "Please set it to your PostgreSQL connection string."
            )

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()


def get_openai_client() -> AsyncOpenAI:
    """
    Get configured async OpenAI client instance
    Uses API key from environment
    """
    if not settings.OPENAI_API_KEY:
        raise ValueError("OPENAI_API_KEY environment variable is required")

    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


def check_extraction_configured() -> bool:
    """Warn at startup when prescription extraction cannot run"""
    logger = logging.getLogger(__name__)

    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set. Prescription analysis endpoint will return 503.")
        return False
    return True
