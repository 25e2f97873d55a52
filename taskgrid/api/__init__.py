"""HTTP surface for taskgrid."""

from __future__ import annotations


def main() -> None:
    """Run the API server (taskgrid-api console script)."""
    import uvicorn

    from taskgrid.config import API_HOST, API_PORT, LOG_LEVEL

    uvicorn.run("taskgrid.api.app:app", host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())
