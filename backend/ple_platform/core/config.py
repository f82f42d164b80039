"""
PLE Platform - Configuration Module
===================================
All configuration is loaded from environment variables and .env.
No hardcoded secrets.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "PLE Platform"
    app_env: str = "development"
    app_debug: bool = False
    app_secret_key: str = Field(..., min_length=32)
    app_port: int = 8000

    @property
    def secret_key(self) -> str:
        return self.app_secret_key

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "ple_platform"
    postgres_user: str = "ple"
    postgres_password: str = Field(..., min_length=8)
    database_url_override: str = ""
    db_pool_size: int = 20
    db_max_overflow: int = 10

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        if self.database_url_override:
            return self.database_url_override.replace("+asyncpg", "").replace("+aiosqlite", "")
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Auth
    access_token_expire_hours: int = 12

    # Content listing
    content_default_page_size: int = 50
    content_max_page_size: int = 100

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8888"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
