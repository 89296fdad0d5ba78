"""
PostgreSQL settings for GearGuard
DATABASE_URL wins over the individual POSTGRES_* variables
"""
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ASYNC_SCHEME = "postgresql+asyncpg://"


def to_asyncpg_url(url: str) -> str:
    """Rewrite a libpq style URL for the asyncpg driver."""
    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            url = ASYNC_SCHEME + url[len(scheme):]
            break
    # asyncpg takes ssl=..., not sslmode=...
    return url.replace("sslmode=", "ssl=")


class PostgresSettings(BaseSettings):
    """Connection and pool options, from environment variables or .env."""

    url_override: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "gearguard"
    postgres_sslmode: str = "disable"

    # Pool
    use_null_pool: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_pre_ping: bool = True
    pool_recycle: int = 1800
    sql_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("url_override")
    @classmethod
    def _normalize_url(cls, value: Optional[str]) -> Optional[str]:
        return to_asyncpg_url(value) if value else None

    @property
    def database_url(self) -> str:
        if self.url_override:
            return self.url_override
        ssl_param = f"?ssl={self.postgres_sslmode}" if self.postgres_sslmode != "disable" else ""
        return (
            f"{ASYNC_SCHEME}{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}{ssl_param}"
        )

    @property
    def safe_location(self) -> str:
        """host:port/db for log lines, without credentials."""
        return self.database_url.rsplit("@", 1)[-1]


postgres_settings = PostgresSettings()
