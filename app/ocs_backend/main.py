"""
OCS Dashboard -- FastAPI application.

Proxies the third-party OCS billing/telemetry API and serves the derived
subscriber usage, cost and profit-margin report consumed by the dashboard.

Configure the upstream credential with the OCS_API_TOKEN environment variable
(or a local ``.env`` file) before starting the app.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ocs_backend.routers.ocs import router as ocs_router
from ocs_backend.utils.config import (
    APP_TITLE,
    APP_VERSION,
    CORS_ALLOW_ORIGINS,
    LOG_LEVEL,
    OCS_API_TOKEN,
    OCS_API_URL,
    OCS_TIMEOUT_SECONDS,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# urllib3 logs the request line, query-string token included, at DEBUG
logging.getLogger("urllib3").setLevel(logging.INFO)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup and shutdown hooks."""
    logger.info(
        "Starting %s v%s (upstream %s, timeout %.1fs)",
        APP_TITLE,
        APP_VERSION,
        OCS_API_URL,
        OCS_TIMEOUT_SECONDS,
    )
    if not OCS_API_TOKEN:
        logger.warning("OCS_API_TOKEN is not set; upstream calls will be rejected")
    yield
    logger.info("Shutting down %s", APP_TITLE)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
app = FastAPI(
    title=APP_TITLE,
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(ocs_router)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return a simple health-check response."""
    return {"status": "healthy", "version": APP_VERSION}
