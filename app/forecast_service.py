"""Turn a WeatherAPI forecast into the tee-time summary served to clients."""
from __future__ import annotations

import datetime as dt
import math
import re
import time as time_mod
from typing import Callable, Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import Settings
from app.data_sources import (
    AttemptOutcome,
    AttemptResult,
    ForecastDay,
    ForecastProvider,
    HourRecord,
    ProviderForecast,
    RetryPolicy,
    build_data_source,
    call_with_retry,
)
from app.data_sources.factory import MISSING_KEY_MESSAGE
from app.errors import (
    ClientInputError,
    ConfigurationError,
    NoDataForDate,
    UpstreamError,
    UpstreamMalformedResponse,
)
from app.models import NOT_AVAILABLE, ForecastRequest, NormalizedForecast
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="app/forecast_service")

REQUIRED_FIELDS = ("location", "date", "time")

DATE_INPUT_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
)

_TEE_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([AaPp]\.?[Mm]\.?)?\s*$")

# Upstream statuses worth echoing back; everything else becomes a generic 500.
PASSTHROUGH_STATUSES = {400}


def validate_request(location: Optional[str], date: Optional[str], time: Optional[str]) -> ForecastRequest:
    """Reject blank or missing fields with a 400 naming each one."""
    values = {"location": location, "date": date, "time": time}
    missing = [name for name in REQUIRED_FIELDS if not (values[name] or "").strip()]
    if missing:
        raise ClientInputError(
            f"Missing {', '.join(missing)} parameter{'s' if len(missing) > 1 else ''} for weather forecast."
        )
    return ForecastRequest(location=location.strip(), date=date.strip(), time=time.strip())


def normalize_date(raw: str) -> dt.date:
    """Parse a client date into a calendar date (sent upstream as YYYY-MM-DD)."""
    value = raw.strip()
    for fmt in DATE_INPUT_FORMATS:
        try:
            return dt.datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    try:
        # fromisoformat only accepts a trailing "Z" from 3.11 on
        iso = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
        return dt.datetime.fromisoformat(iso).date()
    except ValueError:
        raise ClientInputError(f"Invalid date: {raw!r}. Use YYYY-MM-DD.") from None


def tee_time_to_minutes(raw: str) -> int:
    """
    Convert "h:mm AM/PM" (or 24-hour "HH:MM") into minutes since midnight.

    12 AM is hour 0, 12 PM is hour 12, any other PM hour gains 12.
    """
    match = _TEE_TIME_RE.match(raw)
    if not match:
        raise ClientInputError(f"Invalid time: {raw!r}. Use h:mm AM/PM.")

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    meridiem = match.group(3).replace(".", "").lower() if match.group(3) else None

    if minutes > 59 or (meridiem and not 1 <= hours <= 12) or (not meridiem and hours > 23):
        raise ClientInputError(f"Invalid time: {raw!r}. Use h:mm AM/PM.")

    if meridiem == "pm" and hours < 12:
        hours += 12
    elif meridiem == "am" and hours == 12:
        hours = 0
    return hours * 60 + minutes


def closest_hour(hours: Iterable[HourRecord], target_minutes: int) -> Optional[HourRecord]:
    """Hour whose clock time is nearest `target_minutes`; the earlier hour wins ties."""
    best: Optional[HourRecord] = None
    best_diff = math.inf
    for hour in sorted(hours, key=lambda h: h.time):
        diff = abs(hour.time.hour * 60 + hour.time.minute - target_minutes)
        if diff < best_diff:
            best, best_diff = hour, diff
    return best


def select_forecast_day(forecast: ProviderForecast, target_date: dt.date) -> ForecastDay:
    wanted = target_date.isoformat()
    for day in forecast.days:
        if day.date == wanted:
            return day
    raise NoDataForDate("No forecast data found for the specified date.")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (82.5 -> 83, -0.5 -> 0)."""
    return int(math.floor(value + 0.5))


def _fahrenheit(value: Optional[float]) -> str:
    return NOT_AVAILABLE if value is None else f"{round_half_up(value)}°F"


def _percent(value: Optional[float]) -> str:
    return NOT_AVAILABLE if value is None else f"{round_half_up(value)}%"


def _wind(speed: Optional[float], direction: Optional[str]) -> str:
    if speed is None:
        return NOT_AVAILABLE
    if not direction:
        return f"{round_half_up(speed)} mph"
    return f"{round_half_up(speed)} mph from {direction}"


def _resolve_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug("Unknown timezone %r; ignoring", name)
        return None


def format_last_updated(
    epoch: Optional[int],
    tz_name: Optional[str] = None,
    *,
    fallback_tz: str = "UTC",
) -> str:
    """Render an epoch as medium date + short time, e.g. "Aug 19, 2025, 2:30 PM"."""
    if epoch is None:
        return NOT_AVAILABLE
    tz = _resolve_zone(tz_name) or _resolve_zone(fallback_tz) or dt.timezone.utc
    stamp = dt.datetime.fromtimestamp(epoch, tz=tz)
    hour12 = stamp.hour % 12 or 12
    meridiem = "AM" if stamp.hour < 12 else "PM"
    return f"{stamp:%b} {stamp.day}, {stamp.year}, {hour12}:{stamp:%M} {meridiem}"


def build_normalized_forecast(
    day: ForecastDay,
    hour: Optional[HourRecord],
    *,
    forecast_updated: str = NOT_AVAILABLE,
) -> NormalizedForecast:
    """Derive display fields from the day summary and the matched hour."""
    summary = day.day
    return NormalizedForecast(
        high_temp_day=_fahrenheit(summary.maxtemp_f),
        conditions_tee_time=(hour.condition_text if hour and hour.condition_text else NOT_AVAILABLE),
        feels_like_temp=_fahrenheit(hour.feelslike_f if hour else None),
        precipitation_chance=_percent(summary.daily_chance_of_rain),
        wind_speed_direction=_wind(hour.wind_mph, hour.wind_dir) if hour else NOT_AVAILABLE,
        uv_index=NOT_AVAILABLE if summary.uv is None else str(round_half_up(summary.uv)),
        forecast_updated=forecast_updated,
        api_forecast_date=day.date,
    )


def _exhausted_error(result: AttemptResult) -> UpstreamError:
    """Map the last retryable failure to the error surfaced to the client."""
    if result.status_code in PASSTHROUGH_STATUSES and result.upstream_message:
        return UpstreamError(f"Weather API Error: {result.upstream_message}", status_code=result.status_code)
    message = f"Failed to fetch weather data after {result.attempts} attempts: {result.reason}"
    if result.upstream_message:
        message = f"{message} ({result.upstream_message})"
    return UpstreamError(message)


def get_tee_time_forecast(
    location: Optional[str],
    date: Optional[str],
    time: Optional[str],
    *,
    settings: Settings,
    provider: Optional[ForecastProvider] = None,
    sleep: Callable[[float], None] = time_mod.sleep,
) -> NormalizedForecast:
    """
    Validate, fetch with retry, and normalize one tee-time forecast.

    Raises a `ForecastProxyError` subclass for every failure the client should see.
    """
    if not settings.api_key:
        raise ConfigurationError(MISSING_KEY_MESSAGE)

    request = validate_request(location, date, time)
    target_date = normalize_date(request.date)
    tee_minutes = tee_time_to_minutes(request.time)

    provider = provider or build_data_source(settings)
    policy = RetryPolicy.from_settings(settings)

    logger.info(f"Fetching forecast for {request.location!r} on {target_date} near {request.time}")
    result = call_with_retry(
        lambda: provider.fetch_forecast(request.location, target_date),
        policy,
        sleep=sleep,
        label="WeatherAPI",
    )

    if result.outcome is AttemptOutcome.TERMINAL:
        raise UpstreamMalformedResponse("Weather API returned an unexpected response format.")
    if result.outcome is AttemptOutcome.RETRYABLE:
        raise _exhausted_error(result)

    forecast: ProviderForecast = result.value
    day = select_forecast_day(forecast, target_date)
    hour = closest_hour(day.hours, tee_minutes)
    if hour is None:
        logger.warning("Forecast day %s has no hourly entries", day.date)

    return build_normalized_forecast(
        day,
        hour,
        forecast_updated=format_last_updated(
            forecast.last_updated_epoch,
            forecast.tz_id,
            fallback_tz=settings.display_timezone,
        ),
    )

