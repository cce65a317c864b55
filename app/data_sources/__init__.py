"""Forecast provider access: the WeatherAPI client, retry loop and factory."""

from .base import CallableForecastProvider, ForecastProvider
from .factory import build_data_source
from .retry import AttemptOutcome, AttemptResult, RetryPolicy, call_with_retry
from .weather_api_client import (
    DaySummary,
    ForecastDay,
    HourRecord,
    ProviderForecast,
    WeatherApiClient,
    parse_forecast_payload,
)

__all__ = [
    "build_data_source",
    "ForecastProvider",
    "CallableForecastProvider",
    "AttemptOutcome",
    "AttemptResult",
    "RetryPolicy",
    "call_with_retry",
    "DaySummary",
    "ForecastDay",
    "HourRecord",
    "ProviderForecast",
    "WeatherApiClient",
    "parse_forecast_payload",
]
