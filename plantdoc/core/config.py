"""
Configuration management using Pydantic Settings.

This module defines the Settings class that loads configuration from
environment variables and .env files.
"""

from typing import Annotated, Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="Plant Doctor", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # Model
    model_path: str = Field(
        default="models/apple_model_final.tflite",
        description="Path to the bundled TensorFlow Lite model",
    )
    probability_tolerance: float = Field(
        default=0.01,
        ge=0.0,
        le=0.5,
        description="Allowed drift of the probability vector sum from 1.0",
    )

    # Analysis
    analysis_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout of a captured-photo analysis"
    )
    enrichment_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Timeout of a single knowledge store lookup"
    )

    # Knowledge store (Supabase / PostgREST)
    knowledge_store_url: str = Field(
        default="", description="Base URL of the knowledge store (empty = disabled)"
    )
    knowledge_store_key: str = Field(default="", description="Knowledge store API key")
    knowledge_store_table: str = Field(
        default="diseases", description="Table holding disease records"
    )

    # Camera
    camera_device_attempts: int = Field(
        default=10, ge=1, description="Device selection attempts before giving up"
    )
    camera_device_retry_delay: float = Field(
        default=0.5, ge=0, description="Delay between device selection attempts (s)"
    )
    camera_fps: int = Field(default=20, ge=1, description="Live preview frame rate")
    camera_width: int = Field(default=640, ge=1, description="Requested frame width")
    camera_height: int = Field(default=480, ge=1, description="Requested frame height")

    # History
    history_path: str = Field(
        default="data/analysis_history.json", description="Analysis history file"
    )
    history_limit: int = Field(default=50, ge=1, description="Saved results to keep")

    # CORS
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:8081"],
        description="CORS allowed origins",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> Any:
        """Parse CORS origins from environment variable."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=("settings_",),
    )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global Settings instance.

    Returns:
        Settings: The application settings

    Raises:
        ValidationError: If environment variables are invalid
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached Settings instance (used by tests)."""
    global _settings
    _settings = None
