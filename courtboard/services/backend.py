"""
Interface to the court booking backend.

The backend owns courts, sessions, blocks and the waitlist.  The engine
only reads board snapshots and issues commands through this protocol, so
the orchestrators never depend on a particular transport.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from courtboard.models import (
    BoardSnapshot,
    CommandResult,
    Geolocation,
    GroupType,
    Player,
    WaitlistJoinResult,
    WetCourtsResult,
)


class BackendError(Exception):
    """The backend could not be reached or returned an unusable response."""


class CourtBackend(Protocol):
    """Protocol that every backend implementation must satisfy."""

    # ── Commands ──────────────────────────────────────────────────────
    async def assign_court_with_players(
        self,
        court_id: str,
        players: Sequence[Player],
        group_type: GroupType,
        geolocation: Geolocation | None = None,
    ) -> CommandResult:
        ...

    async def assign_from_waitlist(
        self,
        waitlist_entry_id: str,
        court_id: str,
        geolocation: Geolocation | None = None,
    ) -> CommandResult:
        ...

    async def join_waitlist(
        self,
        players: Sequence[Player],
        group_type: GroupType,
        geolocation: Geolocation | None = None,
    ) -> WaitlistJoinResult:
        ...

    # ── Queries ───────────────────────────────────────────────────────
    async def get_board(self) -> BoardSnapshot:
        """Return the complete current board."""
        ...

    # ── Admin ─────────────────────────────────────────────────────────
    async def mark_wet_courts(
        self,
        device_id: str,
        duration_minutes: int,
        reason: str,
        idempotency_key: str,
        court_ids: Sequence[str] | None = None,
    ) -> WetCourtsResult:
        """Block courts for rain.  No court ids means every court."""
        ...

    async def clear_wet_courts(
        self,
        device_id: str,
        court_ids: Sequence[str] | None = None,
    ) -> WetCourtsResult:
        """Remove wet blocks.  No court ids means every court."""
        ...
