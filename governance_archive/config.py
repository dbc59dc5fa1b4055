"""
Configuration management for the Governance Archive engine.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings, read from ARCHIVE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ARCHIVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field(default="development")

    # Datastore
    database_url: str = Field(default="sqlite:///./governance_archive.db")

    # Object storage
    storage_url: str = Field(
        default="file://./storage",
        description="Storage root: https://<project>.supabase.co or file:///path",
    )
    service_key: Optional[str] = Field(default=None)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # Certification function
    functions_url: Optional[str] = Field(
        default=None,
        description="Base URL of the edge functions (e.g. https://<project>.supabase.co/functions/v1)",
    )
    certify_function: str = Field(default="certify-minute-book-entry")

    # Lanes
    sandbox_bucket: str = Field(default="governance_sandbox")
    truth_bucket: str = Field(default="governance_truth")
    uploads_bucket: str = Field(default="minute_book")
    strict_unknown_lane: bool = Field(
        default=False,
        description="Treat artifacts with no lane signal as invisible instead of visible everywhere.",
    )

    # Signed URLs and repair search
    signed_url_ttl_seconds: int = Field(default=600, ge=30, le=86400)
    repair_list_limit: int = Field(default=200, ge=1, le=1000)
    repair_extension: str = Field(default=".pdf")
    signed_marker: str = Field(default="-signed")

    # Logging
    log_level: str = Field(default="INFO")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get engine settings."""
    return settings
