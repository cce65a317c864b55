"""FastAPI application setup for the tee-time weather proxy."""

from fastapi import FastAPI

from .api import router as api_router

app = FastAPI(title="Tee-Time Weather Proxy")


@app.get("/healthz")
def healthz():
    """Liveness probe; never touches the weather provider."""
    return {"status": "ok"}


# API routes
app.include_router(api_router, prefix="/v1")
