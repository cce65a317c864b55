"""HTTP API for the tee-time weather proxy."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, Response

from .config import Settings, get_settings
from .errors import ForecastProxyError
from .forecast_service import get_tee_time_forecast
from .models import ErrorResponse, NormalizedForecast
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="app/api")

ALLOWED_METHODS = "GET, POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type"

router = APIRouter()


def cors_headers(settings: Settings) -> dict[str, str]:
    """Headers attached to every response, including errors and preflight."""
    return {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": settings.cors_allow_origin or "*",
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


def _error_response(status_code: int, message: str, headers: dict[str, str]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


@router.api_route(
    "/weather",
    methods=["GET", "POST", "OPTIONS"],
    response_model=NormalizedForecast,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def get_weather(
    request: Request,
    location: Optional[str] = Query(default=None),
    date: Optional[str] = Query(default=None),
    time: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
):
    """Return the tee-time forecast summary for `location` on `date` near `time`."""
    headers = cors_headers(settings)

    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)

    try:
        forecast = get_tee_time_forecast(location, date, time, settings=settings)
    except ForecastProxyError as exc:
        log = logger.warning if exc.status_code < 500 else logger.error
        log("Forecast request failed with %s (%s): %s", exc.status_code, exc.__class__.__name__, exc.message)
        return _error_response(exc.status_code, exc.message, headers)
    except Exception:
        logger.exception("Unhandled error while building forecast")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to fetch weather data due to an internal error.",
            headers,
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=forecast.model_dump(exclude_none=True),
        headers=headers,
    )
