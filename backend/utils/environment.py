"""
Environment configuration using Pydantic Settings, with validation of the OpenAI key
"""
import logging
import re
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = logging.getLogger(__name__)


def clean_openai_key(raw_key: Optional[str]) -> Optional[str]:
    """Strip whitespace from the key and reject anything that is not an sk- key"""
    if not raw_key:
        return None

    cleaned = re.sub(r"[\n\r\s]", "", raw_key)
    if cleaned.startswith("sk-") and len(cleaned) > 20:
        return cleaned

    logger.error("❌ Invalid OpenAI API key format detected")
    return None


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")
    allowed_origins: str = Field(default="*", description="Allowed CORS origins (comma-separated)")

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key (sk-...)")
    openai_model: str = Field(default="gpt-4o-mini", description="Default completion model")
    request_timeout_seconds: float = Field(default=30, gt=0, description="Per-request timeout")
    max_retries: int = Field(default=3, ge=0, validation_alias="OPENAI_MAX_RETRIES")

    # Rate limiting
    rate_limit_max_requests: int = Field(default=20, ge=1)
    rate_limit_window_seconds: int = Field(default=60, ge=1)

    # Storage
    storage_backend: str = Field(default="memory", description="memory or file")
    storage_dir: str = ".wizard_storage"
    storage_obfuscate: bool = False
    storage_max_age_seconds: Optional[int] = Field(default=86400, ge=1)

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def validate_openai_key(cls, v):
        return clean_openai_key(v)

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()] or ["*"]

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()

    if settings.is_development:
        logger.info(f"🔧 Environment: {settings.app_env}")
        logger.info(f"🔑 OpenAI API key: {'✓ valid' if settings.openai_api_key else '✗ missing/invalid'}")
        if not settings.openai_api_key:
            logger.warning("⚠️ Set OPENAI_API_KEY for AI suggestions and reports")

    return settings


def has_valid_openai_key() -> bool:
    return get_settings().openai_api_key is not None


def get_openai_key() -> Optional[str]:
    return get_settings().openai_api_key
