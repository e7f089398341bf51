"""Configuration management using pydantic-settings."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables (REMOTE_OPTIONS_*)."""

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_OPTIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Option source server the client talks to
    base_url: str = "http://127.0.0.1:8188"

    # Network
    request_timeout_ms: int = 10000

    # Retry backoff after failed fetches
    backoff_base_delay_ms: int = 1000
    backoff_max_delay_ms: int = 10000

    # Background fetch pool size
    max_fetch_workers: int = 4

    # Folder served by /internal/files
    models_directory: Path = Path("./models")

    # Optional allow-list of file extensions for /internal/files (e.g. ".safetensors,.ckpt")
    file_extensions: Optional[str] = None

    log_level: str = "INFO"


settings = Settings()
