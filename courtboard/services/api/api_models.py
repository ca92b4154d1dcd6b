"""
Pydantic models that mirror the backend API's wire shapes.

These are *internal* – the rest of the app never imports them directly.
ApiCourtBackend translates them into courtboard.models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ── Shared ────────────────────────────────────────────────────────────────

class WireParticipant(BaseModel):
    type: Literal["member", "guest"] = "member"
    member_id: str | None = None
    guest_name: str | None = None
    display_name: str | None = None
    member_number: str | None = None
    account_id: str | None = None
    charged_to_account_id: str | None = None


# ── GET /get-board ────────────────────────────────────────────────────────

class WireSession(BaseModel):
    id: str | None = None
    scheduled_end_at: datetime | None = None
    is_tournament: bool = False
    participants: list[WireParticipant] = Field(default_factory=list)


class WireBlock(BaseModel):
    id: str | None = None
    court_number: int
    starts_at: datetime
    ends_at: datetime
    block_type: str | None = None
    title: str | None = None


class WireCourt(BaseModel):
    id: str | None = None
    number: int
    session: WireSession | None = None
    block: WireBlock | None = None


class WireWaitlistEntry(BaseModel):
    id: str
    position: int
    deferred: bool = False
    participants: list[WireParticipant] = Field(default_factory=list)


class WireOperatingHours(BaseModel):
    day_of_week: int
    opens_at: str
    closes_at: str | None = None
    is_closed: bool = False


class GetBoardResponse(BaseModel):
    server_now: datetime | None = None
    courts: list[WireCourt] = Field(default_factory=list)
    upcoming_blocks: list[WireBlock] = Field(default_factory=list)
    waitlist: list[WireWaitlistEntry] = Field(default_factory=list)
    operating_hours: list[WireOperatingHours] = Field(default_factory=list)


# ── POST /assign-court, /assign-from-waitlist ─────────────────────────────

class WireAssignedSession(BaseModel):
    id: str | None = None
    scheduled_end_at: datetime | None = None
    participant_details: list[WireParticipant] = Field(default_factory=list)


class WireDisplacement(BaseModel):
    displaced_session_id: str | None = None
    takeover_session_id: str | None = None
    participants: list[str] = Field(default_factory=list)
    restore_until: datetime | None = None


class CommandResponse(BaseModel):
    ok: bool = False
    code: str | None = None
    message: str | None = None
    error: str | None = None
    server_now: datetime | None = None
    session: WireAssignedSession | None = None
    displacement: WireDisplacement | None = None
    is_time_limited: bool = False
    is_inherited_end_time: bool = False
    time_limit_reason: str | None = None


# ── POST /join-waitlist ───────────────────────────────────────────────────

class WireWaitlistRef(BaseModel):
    id: str | None = None
    position: int | None = None


class JoinWaitlistResponse(BaseModel):
    ok: bool = False
    code: str | None = None
    message: str | None = None
    error: str | None = None
    waitlist: WireWaitlistRef | None = None
    position: int | None = None


# ── POST /mark-wet-courts, /clear-wet-courts ──────────────────────────────

class WetCourtsResponse(BaseModel):
    ok: bool = False
    code: str | None = None
    message: str | None = None
    error: str | None = None
    server_now: datetime | None = None
    court_numbers: list[int] | None = None
    courts_marked: int | None = None
    blocks_created: int | None = None
    blocks_cleared: int | None = None
    ends_at: datetime | None = None
    idempotent: bool | None = None
