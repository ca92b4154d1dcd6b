"""
Backend HTTP API configuration.

Endpoint paths and default headers for the court booking backend's
JSON API.  The base URL and key come from courtboard.config.
"""

from __future__ import annotations

from courtboard.config import BACKEND_API_KEY, BACKEND_BASE_URL, BACKEND_TIMEOUT

BASE_URL = BACKEND_BASE_URL.rstrip("/")
TIMEOUT = BACKEND_TIMEOUT

# ── Commands ──────────────────────────────────────────────────────────────

ASSIGN_COURT_PATH = "/assign-court"
ASSIGN_FROM_WAITLIST_PATH = "/assign-from-waitlist"
JOIN_WAITLIST_PATH = "/join-waitlist"

# ── Queries ───────────────────────────────────────────────────────────────

GET_BOARD_PATH = "/get-board"

# ── Admin ─────────────────────────────────────────────────────────────────

MARK_WET_COURTS_PATH = "/mark-wet-courts"
CLEAR_WET_COURTS_PATH = "/clear-wet-courts"

# ── HTTP defaults ─────────────────────────────────────────────────────────

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "CourtboardEngine/0.1",
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def auth_headers(api_key: str = BACKEND_API_KEY) -> dict[str, str]:
    if not api_key:
        return {}
    return {"Authorization": f"Bearer {api_key}", "apikey": api_key}
