"""Pydantic models for the court availability and assignment engine."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

GroupType = Literal["singles", "doubles"]
WetOp = Literal["activate", "deactivate", "clearOne", "clearAll"]


# ── Board entities (owned by the backend) ─────────────────────────────────


class Player(BaseModel):
    """A member or guest registered in a group."""
    id: str = Field(..., description="Member identifier")
    name: str = Field(..., description="Display name")
    is_guest: bool = Field(default=False, description="Whether the player is a guest")
    member_number: str | None = Field(None, description="Club member number")
    sponsor: str | None = Field(None, description="Sponsoring member for guests")
    account_id: str | None = Field(None, description="Billing account identifier")


class Session(BaseModel):
    """An active (or overtime) session occupying a court."""
    id: str | None = Field(None, description="Backend session identifier")
    scheduled_end_at: datetime | None = Field(None, description="Scheduled session end")
    is_tournament: bool = Field(default=False, description="Tournament matches play to completion")
    players: list[Player] = Field(default_factory=list, description="Players on court")


class Block(BaseModel):
    """A scheduled unavailability window on one court."""
    id: str | None = Field(None, description="Backend block identifier")
    court_number: int = Field(..., ge=1, description="Court the block applies to")
    start_time: datetime = Field(..., description="Block start")
    end_time: datetime = Field(..., description="Block end")
    is_wet_court: bool = Field(default=False, description="Block created by a rain event")
    reason: str | None = Field(None, description="Human readable reason (lesson, maintenance...)")

    @model_validator(mode="after")
    def _check_window(self) -> Block:
        if self.start_time >= self.end_time:
            raise ValueError("block start_time must be before end_time")
        return self


class Court(BaseModel):
    """A physical court and whatever currently occupies it."""
    number: int = Field(..., ge=1, description="Stable user-facing court number")
    id: str | None = Field(None, description="Backend court handle")
    session: Session | None = Field(None, description="Current session, if any")
    block: Block | None = Field(None, description="Current block, if any")


class WaitlistEntry(BaseModel):
    """A group waiting for a court."""
    id: str = Field(..., description="Waitlist entry identifier")
    players: list[Player] = Field(default_factory=list, description="Players in the group")
    deferred: bool = Field(default=False, description="Only accept a full, uninterrupted session")
    position: int = Field(..., ge=1, description="1-based queue position")


class OperatingHours(BaseModel):
    """Opening hours for one day of the week."""
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday, 6=Saturday")
    opens_at: str = Field(..., pattern=r"^\d{1,2}:\d{2}(:\d{2})?$", description="Opening time (HH:MM[:SS])")
    closes_at: str | None = Field(None, description="Closing time (HH:MM[:SS])")
    is_closed: bool = Field(default=False, description="Closed all day")


class BoardSnapshot(BaseModel):
    """Complete court/block/waitlist state as delivered by the backend."""
    courts: list[Court] = Field(default_factory=list)
    blocks: list[Block] = Field(default_factory=list)
    waitlist: list[WaitlistEntry] = Field(default_factory=list)
    operating_hours: list[OperatingHours] = Field(default_factory=list)
    server_now: datetime | None = Field(None, description="Backend clock at snapshot time")

    def court(self, number: int) -> Court | None:
        for court in self.courts:
            if court.number == number:
                return court
        return None


# ── Derived values ────────────────────────────────────────────────────────


class TimelineEntry(BaseModel):
    """Next moment a court becomes usable."""
    court_number: int
    available_at: datetime


class WaitlistMatch(BaseModel):
    """Predicted court and wait for one waitlist entry."""
    entry_id: str
    position: int
    court_number: int | None = Field(None, description="None when no eligible court was found")
    available_at: datetime | None = None
    estimated_minutes: int


class FreeCourtsInfo(BaseModel):
    """Classification of every court at a moment in time."""
    free: list[int] = Field(default_factory=list)
    occupied: list[int] = Field(default_factory=list)
    wet: list[int] = Field(default_factory=list)
    overtime: list[int] = Field(default_factory=list)
    total: int = 0


class CourtBlockStatus(BaseModel):
    """The block that matters for a court right now: current, or the next one."""
    court_number: int
    is_current: bool
    start_time: datetime
    end_time: datetime
    reason: str | None = None


class GroupValidation(BaseModel):
    ok: bool
    errors: list[str] = Field(default_factory=list)


class Geolocation(BaseModel):
    latitude: float
    longitude: float


# ── Guard results ─────────────────────────────────────────────────────────


class UIAction(BaseModel):
    """User-visible feedback requested by a guard."""
    action: Literal["toast", "alert"]
    message: str
    level: Literal["info", "success", "warning", "error"] = "error"


class GuardResult(BaseModel):
    ok: bool
    kind: str | None = None
    ui: UIAction | None = Field(None, description="None means reject silently")

    @classmethod
    def passed(cls) -> GuardResult:
        return cls(ok=True)

    @classmethod
    def failed(cls, kind: str, ui: UIAction | None = None) -> GuardResult:
        return cls(ok=False, kind=kind, ui=ui)


# ── Backend command results ───────────────────────────────────────────────


class AssignedSession(BaseModel):
    id: str | None = None
    scheduled_end_at: datetime | None = None
    participant_details: list[Player] = Field(default_factory=list)


class Displacement(BaseModel):
    """An overtime group bumped to seat the newly assigned group."""
    displaced_session_id: str | None = None
    takeover_session_id: str | None = None
    participants: list[str] = Field(default_factory=list)
    restore_until: datetime | None = Field(None, description="Deadline for undoing the takeover")


class CommandResult(BaseModel):
    """Outcome of an assignment command as reported by the backend."""
    ok: bool
    code: str | None = None
    message: str | None = None
    session: AssignedSession | None = None
    displacement: Displacement | None = None
    is_time_limited: bool = False
    is_inherited_end_time: bool = False
    time_limit_reason: str | None = None


class WaitlistJoinResult(BaseModel):
    ok: bool
    code: str | None = None
    message: str | None = None
    entry_id: str | None = None
    position: int | None = None


class WetCourtsResult(BaseModel):
    ok: bool
    code: str | None = None
    message: str | None = None
    court_numbers: list[int] | None = None
    blocks_cleared: int | None = None
    ends_at: datetime | None = None


# ── Orchestration outcomes ────────────────────────────────────────────────


class ReplacedGroup(BaseModel):
    players: list[str] = Field(default_factory=list)
    end_time: datetime | None = None


class AssignmentOutcome(BaseModel):
    """Result of one assignment attempt, ready for a success/failure screen."""
    ok: bool
    code: str | None = None
    message: str | None = None
    court_number: int | None = None
    session_id: str | None = None
    assigned_end_time: datetime | None = None
    displacement: Displacement | None = None
    replaced_group: ReplacedGroup | None = None
    is_time_limited: bool = False
    time_limit_reason: str | None = None
    can_change_court: bool = False
    change_time_remaining: int = 0
    from_waitlist: bool = False


class WaitlistJoinOutcome(BaseModel):
    ok: bool
    code: str | None = None
    message: str | None = None
    entry_id: str | None = None
    position: int | None = None


# ── Wet courts ────────────────────────────────────────────────────────────


class WetState(BaseModel):
    """Emergency wet-mode state. Instances are immutable; the reducer makes new ones."""
    model_config = ConfigDict(frozen=True)

    is_active: bool = False
    wet_court_numbers: tuple[int, ...] = ()
    suspended_blocks: tuple[Block, ...] = ()
    is_busy: bool = False
    busy_op: WetOp | None = None
    error: str | None = None

    @computed_field
    @property
    def wet_count(self) -> int:
        return len(self.wet_court_numbers)

    @computed_field
    @property
    def is_empty(self) -> bool:
        return not self.wet_court_numbers


# ── API responses ─────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    board_loaded: bool
    last_board_refresh: datetime | None = None
    poll_failures: int = 0


class RefreshSignalResponse(BaseModel):
    scheduled: bool


class TimelineResponse(BaseModel):
    now: datetime
    closing_time: datetime
    timeline: list[TimelineEntry]


class WaitlistEstimatesResponse(BaseModel):
    now: datetime
    estimates: list[WaitlistMatch]


class SelectableCourtsResponse(BaseModel):
    now: datetime
    selectable: list[int]
    showing_overtime: bool
    info: FreeCourtsInfo


class AssignmentRequest(BaseModel):
    court_number: int | None = None
    selectable_count_at_selection: int | None = None
    players: list[Player] = Field(default_factory=list)
    waitlist_entry_id: str | None = None
    confirm_block_conflict: bool = False
    location: Geolocation | None = None


class WaitlistJoinRequest(BaseModel):
    players: list[Player] = Field(default_factory=list)
    location: Geolocation | None = None


class Notice(BaseModel):
    """A message the orchestrator asked the UI to show."""
    kind: Literal["toast", "alert", "confirm"]
    message: str
    level: str | None = None


class AssignmentResponse(BaseModel):
    outcome: AssignmentOutcome
    notices: list[Notice] = Field(default_factory=list)
    gps_failed_prompt: bool = False


class WaitlistJoinResponse(BaseModel):
    outcome: WaitlistJoinOutcome
    notices: list[Notice] = Field(default_factory=list)
    gps_failed_prompt: bool = False
