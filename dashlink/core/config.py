"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App Info
    app_name: str = "Dashlink Relay API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8400
    workers: int = 1

    # Database
    data_save_folder: str = "./data"
    db_file: str = "dashlink.db"

    @property
    def database_url(self) -> str:
        """SQLite database URL."""
        db_path = Path(self.data_save_folder) / self.db_file
        return f"sqlite+aiosqlite:///{db_path}"

    # Owner tokens issued by the identity provider
    jwt_secret_key: str = Field(
        default="xq3Gm8Kd1WvZr0TpL7bNc2YsJ5hFeA9u",
        alias="JWT_SECRET_KEY",
    )
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24  # 24 hours
    jwt_issuer: str = "https://localhost:8400/"
    jwt_audience: str = "https://localhost:8400/"

    # Blob storage
    blob_root: str = Field(default="./data/blobs", alias="BLOB_ROOT")
    blob_url_expire_seconds: int = 600
    public_base_url: str = Field(
        default="http://localhost:8400",
        alias="PUBLIC_BASE_URL",
    )

    # Liveness. Enqueue admission and UI status reporting use separate
    # thresholds; keep both.
    admission_heartbeat_timeout_seconds: int = 60
    status_heartbeat_timeout_seconds: int = 45

    # Command queue
    claim_batch_limit: int = 10
    device_secret_required: bool = True
    default_device_name: str = "EVCam device"

    # Command reaper
    executing_command_timeout_seconds: int = 300
    pending_command_timeout_seconds: int = 900
    command_reaper_interval_seconds: int = 60

    # Background workers (scheduler)
    enable_background_workers: bool = Field(
        default=True,
        alias="ENABLE_BACKGROUND_WORKERS",
    )

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @field_validator("public_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Remove trailing slash so URL joins stay predictable."""
        return v.rstrip("/") if isinstance(v, str) else v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
