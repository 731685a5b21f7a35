"""
Configuration management using Pydantic Settings.

This module defines the Settings class that loads configuration from
environment variables and .env files.
"""

from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="Plant Caretaker", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # Plant.id recognition provider
    plant_id_api_key: str = Field(default="", description="Plant.id API key")
    plant_id_base_url: str = Field(
        default="https://plant.id/api/v3", description="Plant.id API base URL"
    )
    plant_id_timeout: float = Field(
        default=30.0, gt=0, description="Plant.id request timeout (seconds)"
    )
    plant_id_language: str = Field(default="en", description="Language for plant details")
    plant_id_details: Annotated[list[str], NoDecode] = Field(
        default=["common_names", "url", "description", "taxonomy", "synonyms"],
        description="Detail fields requested from Plant.id",
    )
    plant_id_search_limit: int = Field(
        default=5, ge=1, le=20, description="Maximum name-search candidates"
    )
    plant_id_mock_fallback: bool = Field(
        default=True,
        description="Serve example data when no Plant.id API key is configured",
    )

    # Uploads
    max_upload_size_bytes: int = Field(
        default=5 * 1024 * 1024, gt=0, description="Maximum image upload size"
    )

    # MinIO (plant photo storage)
    minio_endpoint: str = Field(default="localhost:9000", description="MinIO endpoint")
    minio_access_key: str = Field(default="", description="MinIO access key")
    minio_secret_key: str = Field(default="", description="MinIO secret key")
    minio_bucket_name: str = Field(default="plant-photos", description="MinIO bucket name")
    minio_secure: bool = Field(default=False, description="Use HTTPS for MinIO")
    photo_storage_enabled: bool = Field(
        default=False,
        description="Move data-URI plant photos into MinIO when saving plants",
    )

    # API Configuration
    api_v1_prefix: str = Field(default="/api/v1", description="API v1 prefix")

    # CORS
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:5173"],
        description="CORS allowed origins",
    )

    @field_validator("cors_origins", "plant_id_details", mode="before")
    @classmethod
    def parse_comma_list(cls, v: Any) -> Any:
        """Parse comma separated lists from environment variables."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


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
