"""Application configuration pulled from environment variables via pydantic."""
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="app/config")


class Settings(BaseSettings):
    """Environment-driven configuration for the tee-time weather proxy."""
    model_config = SettingsConfigDict(env_prefix="WEATHER_", extra="ignore")

    api_key: str | None = None  # WEATHER_API_KEY
    api_base_url: str = "https://api.weatherapi.com/v1"
    forecast_source: str = "weatherapi"
    max_attempts: int = 3
    initial_delay_ms: int = 1000
    rate_limit_multiplier: int = 4
    request_timeout_seconds: float = 10.0
    cors_allow_origin: str = "*"
    display_timezone: str = "UTC"
    log_level: str = "INFO"

    @field_validator("api_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("api_key", mode="after")
    @classmethod
    def blank_key_is_missing(cls, v: str | None) -> str | None:
        """Treat an empty or whitespace-only key as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("max_attempts", mode="after")
    @classmethod
    def at_least_one_attempt(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process; overridden in tests via dependency_overrides."""
    return Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {get_settings().model_dump_json(indent=4, exclude={'api_key'})}")
