"""
FastAPI application for seva.

Provides the HTTP API for temple services: services and their
registrations, events, temples and service types, plus each user's
notifications, quick links and profile.

Callers authenticate with ``Authorization: Bearer <token>``. Domain errors
map to HTTP statuses in ``seva.api.errors``.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination
from fastapi_pagination.utils import disable_installed_extensions_check

from seva.api.dependencies import close_dependencies
from seva.api.responses import HealthCheckResponse
from seva.api.routers import (
    events,
    notifications,
    profile,
    registrations,
    services,
    temples,
)
from seva.config import setup_logging

disable_installed_extensions_check()

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_dependencies()
    logger.info("Dependencies closed")


app = FastAPI(
    title="Seva API",
    description="Temple services, registrations and events",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(temples.router, prefix="/temples", tags=["temples"])
app.include_router(
    services.router,
    prefix="/temples/{temple_id}/services",
    tags=["services"],
)
app.include_router(
    events.router, prefix="/temples/{temple_id}/events", tags=["events"]
)
app.include_router(registrations.router, tags=["registrations"])
app.include_router(notifications.router, tags=["notifications"])
app.include_router(profile.router, tags=["profile"])

_ = add_pagination(app)


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    logger.debug("Health check requested")
    return HealthCheckResponse(
        status="healthy",
        version=VERSION,
        timestamp=datetime.now(timezone.utc),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "seva.api.app:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )
