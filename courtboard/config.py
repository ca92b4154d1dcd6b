"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")

# ── Backend service ───────────────────────────────────────────────────────

BACKEND_BASE_URL: str = os.getenv("BACKEND_BASE_URL", "http://localhost:54321/functions/v1")
BACKEND_TIMEOUT: float = float(os.getenv("BACKEND_TIMEOUT", "15"))
BACKEND_API_KEY: str = os.getenv("BACKEND_API_KEY", "")

# Identifies this kiosk / admin console in admin operations.
DEVICE_ID: str = os.getenv("DEVICE_ID", "kiosk-dev")

# Mobile clients must send geolocation with assignment commands.
IS_MOBILE: bool = os.getenv("IS_MOBILE", "false").lower() == "true"

# How often the board is re-fetched when no push update arrives (seconds).
BOARD_POLL_INTERVAL: float = float(os.getenv("BOARD_POLL_INTERVAL", "5"))

# ── Facility ──────────────────────────────────────────────────────────────

FACILITY_TIMEZONE: str = os.getenv("FACILITY_TIMEZONE", "America/New_York")
COURT_COUNT: int = int(os.getenv("COURT_COUNT", "12"))

# Court reserved for singles play (groups of 4+ cannot use it).
SINGLES_ONLY_COURT: int = int(os.getenv("SINGLES_ONLY_COURT", "8"))

# Hour of day (facility time) at which wet courts are considered parked until.
CLOSING_HOUR: int = int(os.getenv("CLOSING_HOUR", "22"))

# ── Timing (minutes unless noted) ─────────────────────────────────────────

SINGLES_DURATION_MINUTES: int = int(os.getenv("SINGLES_DURATION_MINUTES", "60"))
DOUBLES_DURATION_MINUTES: int = int(os.getenv("DOUBLES_DURATION_MINUTES", "90"))
DOUBLES_MIN_PLAYERS: int = 4

AVG_GAME_MINUTES: int = int(os.getenv("AVG_GAME_MINUTES", "75"))

# A court counts as unavailable this long before a block begins.
REGISTRATION_BUFFER_MINUTES: int = int(os.getenv("REGISTRATION_BUFFER_MINUTES", "15"))

# Gaps before the next block shorter than this are not offered.
MIN_USEFUL_SESSION_MINUTES: int = int(os.getenv("MIN_USEFUL_SESSION_MINUTES", "20"))

# Extra room a deferred group needs on top of its full session.
DEFERRED_SLACK_MINUTES: int = int(os.getenv("DEFERRED_SLACK_MINUTES", "5"))

CHANGE_COURT_TIMEOUT_SEC: int = int(os.getenv("CHANGE_COURT_TIMEOUT_SEC", "30"))
AUTO_RESET_SUCCESS_SEC: float = float(os.getenv("AUTO_RESET_SUCCESS_SEC", "30"))

# Wet-court blocks created by the emergency action last this long.
WET_DURATION_MINUTES: int = int(os.getenv("WET_DURATION_MINUTES", "720"))
WET_REASON: str = "WET COURT"


def facility_tz() -> ZoneInfo:
    return ZoneInfo(FACILITY_TIMEZONE)


def closing_time_for(now: datetime, closing_hour: int = CLOSING_HOUR) -> datetime:
    """Closing time on the facility-local day that contains *now*."""
    local = now.astimezone(facility_tz())
    return local.replace(hour=closing_hour, minute=0, second=0, microsecond=0)
