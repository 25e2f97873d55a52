"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os

# Environment
ENV = os.getenv("TASKGRID_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8080"))
LOG_LEVEL = os.getenv("TASKGRID_LOG_LEVEL", "INFO")

# Google Sheets
SPREADSHEET_ID = os.getenv("TASKGRID_SPREADSHEET_ID", "")
CREDENTIALS_FILE = os.getenv("TASKGRID_CREDENTIALS_FILE", "credentials.json")
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Which backend the service talks to: "sheets" or "memory" (local development)
GRID_BACKEND = os.getenv("TASKGRID_GRID_BACKEND", "sheets").lower()


def is_development() -> bool:
    """Check if running in development"""
    return ENV == "development"
