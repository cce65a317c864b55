"""Pydantic schemas for the forecast proxy request and response bodies."""

from typing import Optional

from pydantic import BaseModel

NOT_AVAILABLE = "N/A"


class ForecastRequest(BaseModel):
    """Validated client request; all fields are raw strings as sent."""
    location: str
    date: str
    time: str


class NormalizedForecast(BaseModel):
    """Display-ready tee-time forecast. Missing upstream values read "N/A"."""
    high_temp_day: str = NOT_AVAILABLE
    conditions_tee_time: str = NOT_AVAILABLE
    feels_like_temp: str = NOT_AVAILABLE
    precipitation_chance: str = NOT_AVAILABLE
    wind_speed_direction: str = NOT_AVAILABLE
    uv_index: str = NOT_AVAILABLE
    forecast_updated: str = NOT_AVAILABLE
    api_forecast_date: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body returned for every non-2xx status."""
    error: str
