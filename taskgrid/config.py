"""Centralized configuration for the taskgrid backend.

Re-exports everything from taskgrid.infrastructure.settings, then adds typed
constants for the grid layout, the colour codec, history reads, the log
stores and the database.  Environment variable overrides use safe defaults so
the app starts without extra env configuration.
"""

from __future__ import annotations

import os

from taskgrid.infrastructure.settings import *  # noqa: F401, F403 (re-export)


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(key: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(key, default).split(",") if item.strip()]


# --- App ---
APP_VERSION: str = "1.0.0"

# --- Grid layout ---
TARGET_SHEETS: list[str] = _env_list("TASKGRID_TARGET_SHEETS", "DEV,Managers")
DEFAULT_SHEET: str = os.getenv("TASKGRID_DEFAULT_SHEET", "DEV")
FIRST_DATA_COLUMN: int = 1
LAST_GRID_COLUMN: str = "ZZ"
HEADER_DATE_FORMAT: str = os.getenv("TASKGRID_HEADER_DATE_FORMAT", "%a %d-%b")
ALLOW_BACKDATED_EDITS: bool = _env_bool("TASKGRID_ALLOW_BACKDATED_EDITS", "true")

# --- Status colours ---
COLOR_TOLERANCE: float = float(os.getenv("TASKGRID_COLOR_TOLERANCE", "0.15"))

# --- History reads ---
HISTORY_DAYS: int = int(os.getenv("TASKGRID_HISTORY_DAYS", "7"))
HISTORY_MAX_WORKERS: int = int(os.getenv("TASKGRID_HISTORY_MAX_WORKERS", "4"))

# --- Log / metadata stores ---
LOG_BACKEND: str = os.getenv("TASKGRID_LOG_BACKEND", "sqlite").lower()
SHEET_DB_EMPLOYEES: str = os.getenv("TASKGRID_SHEET_DB_EMPLOYEES", "database")
SHEET_DB_LOGS: str = os.getenv("TASKGRID_SHEET_DB_LOGS", "database_logs")

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("TASKGRID_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("TASKGRID_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("TASKGRID_DB_CONNECT_TIMEOUT", "30.0"))
DB_TEMP_CONN_MAX: int = int(os.getenv("TASKGRID_DB_TEMP_CONN_MAX", "10"))
DB_RETRY_MAX: int = int(os.getenv("TASKGRID_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("TASKGRID_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("TASKGRID_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("TASKGRID_DB_RETRY_JITTER", "0.1"))

# --- API ---
CORS_ALLOWED_ORIGINS: list[str] = _env_list("TASKGRID_CORS_ORIGINS", "")
