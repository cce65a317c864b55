"""Interfaces and helpers for forecast providers."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Callable, Protocol

from app.data_sources.retry import AttemptResult


class ForecastProvider(Protocol):
    """Anything that can make one forecast attempt for a location and day."""

    def fetch_forecast(self, location: str, target_date: dt.date) -> AttemptResult:
        """Return the classified outcome of a single provider call."""
        ...


@dataclass
class CallableForecastProvider(ForecastProvider):
    """Wrap a plain callable so it can stand in for a provider client."""

    fetch: Callable[[str, dt.date], AttemptResult]

    def fetch_forecast(self, location: str, target_date: dt.date) -> AttemptResult:
        return self.fetch(location, target_date)
