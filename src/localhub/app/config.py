"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve .env from the project root regardless of CWD
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"

# Keys the frontend used to ship before a real key was provisioned
_PLACEHOLDER_KEYS = {"", "placeholder-key"}


class Settings(BaseSettings):
    """Central configuration loaded from environment variables / .env file."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./localhub.db"

    # Language model
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    llm_timeout_seconds: float = 60.0

    # Moderation classifiers
    openai_api_key: str = ""
    google_cloud_api_key: str = ""

    # Locale
    locale_name: str = "Lethbridge"
    timezone: str = "America/Edmonton"

    # CORS / Frontend
    cors_origins: str = "http://localhost:5173"

    # General
    debug: bool = True

    model_config = {"env_file": str(_ENV_FILE), "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def llm_configured(self) -> bool:
        """True when a usable Gemini key is present."""
        return self.gemini_api_key.strip() not in _PLACEHOLDER_KEYS

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        In debug mode, returns ["*"] to allow any origin.
        """
        if self.debug:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
