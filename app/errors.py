"""Failure taxonomy for the forecast proxy; each error knows its HTTP status."""
from __future__ import annotations

from typing import Optional


class ForecastProxyError(Exception):
    """Base class for failures converted to `{"error": ...}` responses."""
    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ClientInputError(ForecastProxyError):
    """Missing or unparseable request field. Never reaches the provider."""
    status_code = 400


class ConfigurationError(ForecastProxyError):
    """Server is missing its provider credential."""
    status_code = 500


class UpstreamError(ForecastProxyError):
    """Provider kept failing (status or network) until retries ran out."""
    status_code = 500


class UpstreamMalformedResponse(ForecastProxyError):
    """Provider answered 2xx with a body we cannot interpret. Not retried."""
    status_code = 500


class NoDataForDate(ForecastProxyError):
    """Provider answered, but without a forecast day for the requested date."""
    status_code = 404
