"""
Application settings for the GearGuard backend.
Values come from environment variables or the .env file.
"""
from datetime import datetime, timezone

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Runtime options that are not about the database connection."""

    secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    cors_origins: str = "*"

    # Reject backward stage moves (e.g. Repaired -> New)
    enforce_forward_transitions: bool = True
    tracking_preview_length: int = 50

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


app_settings = AppSettings()
