"""Application configuration settings."""

from functools import lru_cache
from typing import Any

from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Grade Import Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"

    # School backend
    SCHOOL_API_BASE_URL: AnyHttpUrl = "http://localhost:3000"
    SCHOOL_API_TIMEOUT_SECONDS: float | None = None

    # Grade import
    DEFAULT_TARGET_MAX: float = 100
    EXPORT_PAGE_SIZE: int = 500

    # Upload Settings
    MAX_UPLOAD_SIZE_MB: int = 10
    ALLOWED_EXTENSIONS: list[str] = [".xlsx"]

    @field_validator("SCHOOL_API_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def empty_timeout_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("DEFAULT_TARGET_MAX")
    @classmethod
    def validate_default_target_max(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("DEFAULT_TARGET_MAX must be positive")
        return v

    @property
    def school_api_base_url(self) -> str:
        """Backend base URL without a trailing slash."""
        return str(self.SCHOOL_API_BASE_URL).rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
