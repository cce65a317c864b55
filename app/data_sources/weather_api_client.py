"""Helpers for fetching per-day forecasts from the WeatherAPI.com forecast endpoint."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, List, Optional

import requests

from app.data_sources.retry import AttemptResult
from utils.logging_utils import get_tagged_logger, mask_secret_params
logger = get_tagged_logger(__name__, tag='weather_api_client')

session = requests.Session()

WEATHER_API_BASE_URL = "https://api.weatherapi.com/v1"
FORECAST_PATH = "/forecast.json"
HOUR_TIME_FORMAT = "%Y-%m-%d %H:%M"


class MalformedPayload(ValueError):
    """Raised when a 2xx body does not have the forecast.json shape."""


@dataclass
class DaySummary:
    """Day-level aggregates for one forecast day."""
    maxtemp_f: Optional[float]
    daily_chance_of_rain: Optional[float]
    uv: Optional[float]


@dataclass
class HourRecord:
    """One hourly forecast entry (local time of the queried location)."""
    time: dt.datetime
    temp_f: Optional[float]
    feelslike_f: Optional[float]
    condition_text: Optional[str]
    wind_mph: Optional[float]
    wind_dir: Optional[str]


@dataclass
class ForecastDay:
    """A `forecast.forecastday[]` entry."""
    date: str  # YYYY-MM-DD as reported by the provider
    day: DaySummary
    hours: List[HourRecord] = field(default_factory=list)


@dataclass
class ProviderForecast:
    """Parsed forecast.json response."""
    days: List[ForecastDay]
    last_updated_epoch: Optional[int] = None
    tz_id: Optional[str] = None
    location_name: Optional[str] = None


def _number(value: Any) -> Optional[float]:
    """Coerce provider numerics; anything unusable counts as absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _parse_hour(raw: Any) -> HourRecord:
    if not isinstance(raw, dict):
        raise MalformedPayload("hour entry is not an object")
    try:
        when = dt.datetime.strptime(str(raw.get("time")), HOUR_TIME_FORMAT)
    except ValueError as exc:
        raise MalformedPayload(f"bad hour timestamp: {raw.get('time')!r}") from exc

    condition = raw.get("condition")
    condition_text = _text(condition.get("text")) if isinstance(condition, dict) else None

    return HourRecord(
        time=when,
        temp_f=_number(raw.get("temp_f")),
        feelslike_f=_number(raw.get("feelslike_f")),
        condition_text=condition_text,
        wind_mph=_number(raw.get("wind_mph")),
        wind_dir=_text(raw.get("wind_dir")),
    )


def _parse_day(raw: Any) -> ForecastDay:
    if not isinstance(raw, dict):
        raise MalformedPayload("forecastday entry is not an object")
    date = raw.get("date")
    day = raw.get("day")
    hours = raw.get("hour", [])
    if not isinstance(date, str):
        raise MalformedPayload("forecastday entry has no date")
    if not isinstance(day, dict):
        raise MalformedPayload(f"forecastday {date} has no day summary")
    if not isinstance(hours, list):
        raise MalformedPayload(f"forecastday {date} hour field is not a list")

    return ForecastDay(
        date=date,
        day=DaySummary(
            maxtemp_f=_number(day.get("maxtemp_f")),
            daily_chance_of_rain=_number(day.get("daily_chance_of_rain")),
            uv=_number(day.get("uv")),
        ),
        hours=[_parse_hour(h) for h in hours],
    )


def parse_forecast_payload(data: Any) -> ProviderForecast:
    """Turn a decoded forecast.json body into a ProviderForecast or raise MalformedPayload."""
    if not isinstance(data, dict):
        raise MalformedPayload("response body is not an object")
    forecast = data.get("forecast")
    if not isinstance(forecast, dict) or not isinstance(forecast.get("forecastday"), list):
        raise MalformedPayload("response has no forecast.forecastday list")

    current = data.get("current") if isinstance(data.get("current"), dict) else {}
    location = data.get("location") if isinstance(data.get("location"), dict) else {}
    epoch = _number(current.get("last_updated_epoch"))

    return ProviderForecast(
        days=[_parse_day(d) for d in forecast["forecastday"]],
        last_updated_epoch=int(epoch) if epoch is not None else None,
        tz_id=_text(location.get("tz_id")),
        location_name=_text(location.get("name")),
    )


def _upstream_error_message(resp) -> Optional[str]:
    """Pull `error.message` out of a WeatherAPI error body, if there is one."""
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return _text(body["error"].get("message"))
    return None


class WeatherApiClient:
    """Single-attempt access to `forecast.json`; retries live in the caller."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = WEATHER_API_BASE_URL,
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def build_params(self, location: str, target_date: dt.date) -> dict:
        """Query parameters for one forecast day; air quality and alerts are suppressed."""
        return {
            "key": self.api_key,
            "q": location,
            "dt": target_date.isoformat(),
            "aqi": "no",
            "alerts": "no",
        }

    def fetch_forecast(self, location: str, target_date: dt.date) -> AttemptResult:
        """Make one GET and classify the outcome."""
        url = f"{self.base_url}{FORECAST_PATH}"
        params = self.build_params(location, target_date)
        prepared_url = requests.Request("GET", url, params=params).prepare().url
        logger.info("Calling WeatherAPI: %s", mask_secret_params(prepared_url))

        try:
            resp = session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("WeatherAPI request failed: %s", mask_secret_params(str(exc)))
            return AttemptResult.retryable(f"network error: {exc.__class__.__name__}")

        status = resp.status_code
        if not 200 <= status < 300:
            message = _upstream_error_message(resp)
            logger.warning("WeatherAPI error response %s: %s", status, message or "no error message")
            return AttemptResult.retryable(f"HTTP {status}", status_code=status, upstream_message=message)

        try:
            data = resp.json()
        except ValueError:
            logger.error("WeatherAPI returned a non-JSON body with status %s", status)
            return AttemptResult.terminal("response body is not JSON", status_code=status)

        try:
            forecast = parse_forecast_payload(data)
        except MalformedPayload as exc:
            logger.error("Unexpected WeatherAPI response shape: %s", exc)
            return AttemptResult.terminal(str(exc), status_code=status)

        logger.debug("Parsed WeatherAPI forecast: %d day(s) for %s", len(forecast.days), forecast.location_name)
        return AttemptResult.success(forecast, status_code=status)
