"""Health check endpoint for the taskgrid API.

Provides a liveness probe; it reports configuration presence only and makes
no grid or database call.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from taskgrid.config import APP_VERSION, GRID_BACKEND, LOG_BACKEND, SPREADSHEET_ID

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint.

    Returns service status, version, and which backends are configured.
    """
    return {
        "status": "healthy",
        "service": "taskgrid API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "backends": {
            "grid": GRID_BACKEND,
            "logs": LOG_BACKEND,
            "spreadsheet_configured": bool(SPREADSHEET_ID),
        },
    }
