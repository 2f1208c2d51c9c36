"""
Settings for the invoice ingestion service.

Values come from the environment or a .env file; see Settings for the names.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """OpenAI and file storage settings (OPENAI_API_KEY, STORAGE_PATH, ...)."""

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1"

    # File storage
    storage_path: str = "storage"
    storage_base_url: str = "/files"

    # Log level DEBUG instead of INFO
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file next to this module
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Service configuration loaded from environment.
    """
    return Settings()
