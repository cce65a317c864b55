import os

import uvicorn

from app.config import get_settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def warn_if_unconfigured() -> None:
    """
    Log loudly when WEATHER_API_KEY is unset.

    The server still starts; every forecast request will answer 500 with a
    configuration error until the key is provided.
    """
    if not get_settings().api_key:
        logger.error("WEATHER_API_KEY is not set; /v1/weather will return configuration errors.")


if __name__ == "__main__":
    setup_logging(level=get_settings().log_level, job_name="weather_proxy")
    warn_if_unconfigured()

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
