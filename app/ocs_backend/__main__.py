"""
Run the OCS dashboard backend with uvicorn.

Usage:
    python -m ocs_backend
    ocs-dashboard
"""

from __future__ import annotations

import uvicorn

from ocs_backend.utils.config import HOST, LOG_LEVEL, PORT


def main() -> None:
    uvicorn.run(
        "ocs_backend.main:app",
        host=HOST,
        port=PORT,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
