# src/file_repository/config/settings.py
import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from file_repository.config.settings import get_settings
        settings = get_settings()
        storage_dir = settings.storage_dir
    """

    # Application Settings
    app_name: str = Field(
        default="file-repository",
        description="Application name"
    )

    # Storage Configuration
    storage_dir: str = Field(
        default="uploads",
        description="Directory holding the stored files"
    )

    staging_dir_name: str = Field(
        default=".incoming",
        description="Sub-directory of storage_dir used for in-progress uploads"
    )

    # HTTP Configuration
    host: str = Field(
        default="0.0.0.0",
        description="Interface the API server binds to"
    )

    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port the API server listens on"
    )

    allowed_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed by the CORS middleware"
    )

    # Listing / deletion
    default_page_size: int = Field(
        default=10,
        ge=1,
        description="Page size used when a listing request does not set one"
    )

    max_delete_workers: int = Field(
        default=8,
        ge=1,
        description="Upper bound on concurrent deletions in a batch delete"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard logging level names."""
        level = {"WARN": "WARNING", "FATAL": "CRITICAL"}.get(str(v).upper(), str(v).upper())
        if level == "NOTSET" or level not in logging.getLevelNamesMapping():
            raise ValueError(f"Invalid log_level: {v}")
        return level

    @field_validator('staging_dir_name')
    @classmethod
    def validate_staging_dir_name(cls, v):
        """The staging directory must be a single path component."""
        if not v or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"Invalid staging_dir_name: {v!r}")
        return v

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_prefix="FILE_REPOSITORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
