"""
Runtime configuration for the relay, read from the environment and `.env`.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Route Relay API"
    app_description: str = "Server-side relay for OpenRouteService geocoding, optimization and directions"
    app_version: str = "1.0.0"

    openrouteservice_api_key: str = Field(min_length=1)
    ors_base_url: str = "https://api.openrouteservice.org"
    upstream_timeout_seconds: Optional[float] = None
    # Threads available for in-flight provider calls.
    upstream_max_workers: int = Field(default=512, ge=1)

    host: str = "0.0.0.0"
    port: int = 3000
    static_dir: str = "public"
    cors_allow_origins: str = "*"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        level = LOG_LEVEL_ALIASES.get(level, level)
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def masked_api_key(self) -> str:
        return f"{self.openrouteservice_api_key[:8]}..."


def load_settings(**overrides) -> Settings:
    """Build settings once at startup. Raises pydantic.ValidationError when the key is missing."""
    return Settings(**overrides)
