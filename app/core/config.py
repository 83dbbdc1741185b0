"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL (relational store)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "upstart_user"
    postgres_password: str = "password"
    postgres_db: str = "upstart_db"
    # Full SQLAlchemy URL, overrides the postgres_* parts when set
    database_url: Optional[str] = None

    # MongoDB (blob store, GridFS)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "upstart_files"

    # Identity provider
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440
    bcrypt_rounds: int = 12
    session_cookie_name: str = "upstart_session"
    session_rate_limit: int = 30
    session_rate_window_seconds: int = 300

    # Legacy signup cookie ("user", httpOnly, 1 week)
    legacy_user_cookie: bool = True
    legacy_cookie_max_age: int = 60 * 60 * 24 * 7
    cookie_secure: bool = False

    # Uploads / public URLs
    public_base_url: str = "http://localhost:8000"
    max_upload_mb: int = 5

    # App
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: str = "*"

    @property
    def postgres_url(self) -> str:
        """Construct the relational store connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def cors_origin_list(self) -> list:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
