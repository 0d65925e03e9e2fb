"""
Application configuration using Pydantic Settings.

Configuration values can be set via environment variables or .env file.
"""

import json
from pathlib import Path
from typing import Annotated, List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Server settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "Retro Board"
    version: str = "1.0.0"
    debug: bool = False
    dev_mode: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite:///./retroboard.db"

    # CORS origins accepted by the API
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:4321", "http://localhost:3000"]

    # Board rules
    session_expiry_days: int = 30
    max_session_name_length: int = 100
    max_card_content_length: int = 500
    default_page_limit: int = 100
    max_page_limit: int = 500
    max_request_body_size: int = 16 * 1024
    cache_max_age_seconds: int = 1

    # Rate limiting configuration
    rate_limit_enabled: bool = True
    rate_limit_read_endpoints: str = "300/minute"
    rate_limit_write_endpoints: str = "120/minute"
    rate_limit_session_create: str = "30/minute"

    # Optional Redis URL for distributed rate limiting
    # When set, rate limits will be shared across multiple instances
    redis_url: Optional[str] = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: Union[str, List[str]]) -> List[str]:
        """Accept a JSON list or a comma-separated string."""
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


class ClientSettings(BaseSettings):
    """Defaults for the board sync client."""

    model_config = SettingsConfigDict(
        env_prefix="RETRO_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str = "http://localhost:8000"
    request_timeout: float = 10.0
    poll_interval: float = 10.0
    autosave_delay: float = 0.3
    animation_duration: float = 0.4
    history_limit: int = 20
    storage_path: Path = Path.home() / ".retroboard" / "storage.json"


# Global settings instance
settings = Settings()
