"""Factory helpers for building the forecast provider from settings."""

from __future__ import annotations

from app import config
from app.data_sources.base import ForecastProvider
from app.data_sources.weather_api_client import WeatherApiClient
from app.errors import ConfigurationError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "weatherapi"

MISSING_KEY_MESSAGE = "Weather API Key not configured. Please set WEATHER_API_KEY in the environment."


def build_data_source(settings: config.Settings | None = None) -> ForecastProvider:
    """Instantiate the configured provider with the credential passed in explicitly."""
    settings = settings or config.get_settings()
    source = (settings.forecast_source or DEFAULT_SOURCE_NAME).lower()

    if source == "weatherapi":
        if not settings.api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)
        logger.debug("Using WeatherAPI data source at %s", settings.api_base_url)
        return WeatherApiClient(
            settings.api_key,
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
        )

    raise ValueError(f"Unknown forecast source '{source}'")
