"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - Read from the environment and an optional .env file, case-insensitive
    - Every setting has a default so a local mongod needs no configuration
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "backstage"

    # Media host
    cloudinary_cloud_name: str = "demo"
    cloudinary_api_key: str = "cloudinary-key-placeholder"
    cloudinary_api_secret: str = "cloudinary-secret-placeholder"

    # Auth
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 30
    bcrypt_rounds: int = 12
    password_reset_token_expire_minutes: int = 60
    public_base_url: str = "http://localhost:3000"

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # Mail
    smtp_host: str | None = None
    smtp_port: int | None = None
    smtp_user: str | None = None
    smtp_password: str | None = None

    # Uploads
    upload_max_bytes: int = 10 * 1024 * 1024
    media_purge_min_age_days: int = 7

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
