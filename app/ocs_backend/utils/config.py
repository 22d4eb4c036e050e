"""
Configuration module for the OCS dashboard backend.

All settings are configurable via environment variables (or a local ``.env``
file).  The upstream API token is never hard-coded; set ``OCS_API_TOKEN``
before starting the app.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Upstream OCS API
# ---------------------------------------------------------------------------
OCS_API_URL: str = os.getenv("OCS_API_URL", "https://ocs-api.esimvault.cloud/v1")
OCS_API_TOKEN: str = os.getenv("OCS_API_TOKEN", "")

# Every outbound call is bounded by this wait (seconds)
OCS_TIMEOUT_SECONDS: float = float(os.getenv("OCS_TIMEOUT_SECONDS", "8"))

# Used when a report request carries no startDate
OCS_DEFAULT_START_DATE: str = os.getenv("OCS_DEFAULT_START_DATE", "2025-06-01")

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_TITLE: str = "OCS Dashboard"
APP_VERSION: str = "1.0.0"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
CORS_ALLOW_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]

# ---------------------------------------------------------------------------
# Server (``python -m ocs_backend`` / ``ocs-dashboard``)
# ---------------------------------------------------------------------------
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8000"))
