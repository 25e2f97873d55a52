"""FastAPI server for the taskgrid task tracker"""

from __future__ import annotations

import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskgrid.api.routes.health import router as health_router
from taskgrid.api.routes.logs import router as logs_router
from taskgrid.api.routes.tasks import router as tasks_router
from taskgrid.config import APP_VERSION, CORS_ALLOWED_ORIGINS, LOG_BACKEND, is_development
from taskgrid.errors import (
    ConflictError,
    NotFoundError,
    StoreUnavailableError,
    TaskGridError,
    TaskValidationError,
)
from taskgrid.infrastructure.database import init_database
from taskgrid.observability.logging import get_logger
from taskgrid.observability.telemetry import counter, log_event

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="taskgrid API", version=APP_VERSION)

logger = get_logger(__name__)

# Most specific first; TaskGridError is the catch-all
ERROR_STATUS: list[tuple[type[TaskGridError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TaskValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: TaskGridError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Custom validation error handler that prevents leaking internal validation logic.
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


@app.exception_handler(TaskGridError)
async def taskgrid_exception_handler(request: Request, exc: TaskGridError) -> JSONResponse:
    """Map the taskgrid error taxonomy onto HTTP status codes."""
    code = status_for(exc)
    if code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    counter(f"api.errors.{code}")

    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# CORS - configured origins plus the local frontend dev servers in development
ALLOWED_ORIGINS = list(CORS_ALLOWED_ORIGINS)

if is_development():
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

# Initialize database schema when the logs live in SQLite
if LOG_BACKEND == "sqlite":
    try:
        logger.info("Initializing database schema...")
        init_database()
        logger.info("Database initialization complete")
    except sqlite3.OperationalError as e:
        logger.critical("Database schema error: %s", e)
        raise RuntimeError(f"Database initialization failed: {e}") from e
    except OSError as e:
        logger.critical("Database path unusable: %s", e)
        raise RuntimeError(f"Database initialization failed: {e}") from e

# Include routers
app.include_router(health_router)
app.include_router(tasks_router)
app.include_router(logs_router)

log_event("api.startup", service="taskgrid", version=APP_VERSION, log_backend=LOG_BACKEND)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "taskgrid API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "employee_tasks": "/employee/{name}/tasks",
            "all_tasks": "/employees/tasks",
            "update_tasks": "/task",
            "metadata": "/metadata",
            "touch_metadata": "/metadata/{name}/touch",
            "logs": "/logs",
        },
    }
