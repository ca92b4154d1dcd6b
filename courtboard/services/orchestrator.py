"""
Court assignment orchestration.

Turns a court choice (or a waitlist group's priority) into a committed
session on the backend:

  guards → block-conflict confirmation → backend command → outcome

Races with other kiosks (``COURT_OCCUPIED``) are resolved by refreshing
the board.  Mobile clients that fail the geofence get the QR fallback
prompt instead of an error.  After a success the board refresh is best
effort and never overrides the success state.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from courtboard.config import (
    AUTO_RESET_SUCCESS_SEC,
    CHANGE_COURT_TIMEOUT_SEC,
    COURT_COUNT,
    IS_MOBILE,
)
from courtboard.domain.availability import get_court_block_status, has_soon_block_conflict
from courtboard.domain.groups import (
    direct_assignment_group_type,
    session_duration_minutes,
    validate_group_compat,
)
from courtboard.domain.guards import (
    ALREADY_ASSIGNING,
    INVALID_COURT,
    GroupCompatValidator,
    guard_court_number,
    guard_group,
    guard_group_compat,
    guard_not_assigning,
    guard_operating_hours,
)
from courtboard.domain.waitlist import minutes_until
from courtboard.models import (
    AssignmentOutcome,
    CommandResult,
    Geolocation,
    GuardResult,
    Player,
    ReplacedGroup,
)
from courtboard.services.backend import BackendError, CourtBackend
from courtboard.services.board import BoardStore
from courtboard.services.ui import RegistrationUI, dispatch_ui_action

logger = logging.getLogger(__name__)

COURT_OCCUPIED = "COURT_OCCUPIED"
COURT_NOT_FOUND = "COURT_NOT_FOUND"
LOCATION_REQUIRED = "LOCATION_REQUIRED"
BLOCK_CONFLICT_DECLINED = "BLOCK_CONFLICT_DECLINED"
BACKEND_ERROR = "BACKEND_ERROR"

LocationProvider = Callable[[], Awaitable[Geolocation | None]]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


class InFlightCommands:
    """
    Keys of backend commands currently running in this process.

    Per-kiosk flags such as ``is_assigning`` only stop one orchestrator
    from re-entering.  Orchestrators built per HTTP request share one of
    these so a double tap on the same court, waitlist entry or player
    sends a single command.
    """

    def __init__(self) -> None:
        self._keys: set[str] = set()

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def claim(self, keys: Iterable[str]) -> bool:
        """Take every key, or none of them when any is already taken."""
        wanted = set(keys)
        if wanted & self._keys:
            return False
        self._keys |= wanted
        return True

    def release(self, keys: Iterable[str]) -> None:
        self._keys.difference_update(keys)


@dataclass
class RegistrationState:
    """Per-kiosk registration state shared by the assignment and waitlist flows."""
    current_group: list[Player] = field(default_factory=list)
    is_assigning: bool = False
    is_joining_waitlist: bool = False
    current_waitlist_entry_id: str | None = None
    has_waitlist_priority: bool = False
    mobile_flow: bool = False
    preselected_court: int | None = None
    gps_failed_prompt: bool = False
    waitlist_position: int | None = None
    last_outcome: AssignmentOutcome | None = None
    can_change_court: bool = False
    change_time_remaining: int = 0
    is_changing_court: bool = False
    original_court_data: ReplacedGroup | None = None


class CourtAssignmentOrchestrator:
    """
    Runs one kiosk's court assignments against the backend.

    Usage::

        orchestrator = CourtAssignmentOrchestrator(backend, ui, board_store)
        orchestrator.state.current_group = players
        outcome = await orchestrator.assign(5, selectable_count_at_selection=3)
    """

    def __init__(
        self,
        backend: CourtBackend,
        ui: RegistrationUI,
        board: BoardStore,
        *,
        state: RegistrationState | None = None,
        court_count: int = COURT_COUNT,
        is_mobile: bool = IS_MOBILE,
        location_provider: LocationProvider | None = None,
        validate_group_compat: GroupCompatValidator = validate_group_compat,
        clock: Clock = utcnow,
        change_court_timeout_sec: int = CHANGE_COURT_TIMEOUT_SEC,
        auto_reset_sec: float = AUTO_RESET_SUCCESS_SEC,
        in_flight: InFlightCommands | None = None,
    ) -> None:
        self._backend = backend
        self._ui = ui
        self._board = board
        self.state = state or RegistrationState()
        self._in_flight = in_flight if in_flight is not None else InFlightCommands()
        self._court_count = court_count
        self._is_mobile = is_mobile
        self._location_provider = location_provider
        self._validate = validate_group_compat
        self._clock = clock
        self._change_court_timeout = change_court_timeout_sec
        self._auto_reset = auto_reset_sec
        self._countdown_task: asyncio.Task[None] | None = None
        self._reset_task: asyncio.Task[None] | None = None

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def close(self) -> None:
        """Cancel the change-court countdown and the auto-reset timer."""
        await self._cancel_timers()

    def reset(self) -> None:
        """Return to a blank registration, keeping the mobile flow settings."""
        self._cancel_timers_nowait()
        state = self.state
        self.state = RegistrationState(
            mobile_flow=state.mobile_flow,
            preselected_court=state.preselected_court if state.mobile_flow else None,
        )
        logger.debug("Registration state reset")

    # ── Assignment ─────────────────────────────────────────────────────

    async def assign(
        self,
        court_number: int | None,
        selectable_count_at_selection: int | None = None,
    ) -> AssignmentOutcome:
        state = self.state

        rejected = self._run_guard(guard_not_assigning(state.is_assigning))
        if rejected:
            return rejected

        if state.mobile_flow and state.preselected_court and not court_number:
            court_number = state.preselected_court

        board = self._board.snapshot
        now = self._clock()
        group = list(state.current_group)

        # Named members only for validation; guests are counted separately.
        players = [p for p in group if not p.is_guest and p.id.strip() and p.name.strip()]
        all_players = [p for p in group if p.name.strip()]
        guests = sum(1 for p in group if p.is_guest)

        guards: tuple[Callable[[], GuardResult], ...] = (
            lambda: guard_operating_hours(board.operating_hours, now),
            lambda: guard_court_number(court_number, self._court_count),
            lambda: guard_group(group),
            lambda: guard_group_compat(players, guests, self._validate),
        )
        for check in guards:
            rejected = self._run_guard(check())
            if rejected:
                return rejected
        if court_number is None:
            return AssignmentOutcome(ok=False, code=INVALID_COURT)

        # Claimed before the first await so a concurrent request sees it.
        keys = [f"court:{court_number}"]
        if state.current_waitlist_entry_id:
            keys.append(f"waitlist:{state.current_waitlist_entry_id}")
        if not self._in_flight.claim(keys):
            logger.info("Court %s already has an assignment in flight", court_number)
            return AssignmentOutcome(ok=False, code=ALREADY_ASSIGNING, court_number=court_number)
        state.is_assigning = True
        try:
            return await self._assign_claimed(
                court_number, all_players, now, selectable_count_at_selection
            )
        finally:
            state.is_assigning = False
            self._in_flight.release(keys)

    async def _assign_claimed(
        self,
        court_number: int,
        all_players: list[Player],
        now: datetime,
        selectable_count_at_selection: int | None,
    ) -> AssignmentOutcome:
        state = self.state
        duration = session_duration_minutes(len(all_players))
        if not await self._confirm_block_conflict(court_number, duration, now):
            self._ui.alert("Please select a different court or join the waitlist.")
            return AssignmentOutcome(ok=False, code=BLOCK_CONFLICT_DECLINED, court_number=court_number)

        court = self._board.snapshot.court(court_number)
        if court is None or not court.id:
            logger.error("Court %s not found on the board", court_number)
            self._ui.toast("Court not found. Please refresh and try again.", "error")
            return AssignmentOutcome(ok=False, code=COURT_NOT_FOUND, court_number=court_number)

        await self._cancel_timers()
        geolocation = await self._geolocation()
        if state.current_waitlist_entry_id:
            return await self._assign_from_waitlist(
                state.current_waitlist_entry_id, court_number, court.id, geolocation
            )
        return await self._assign_direct(
            court_number, court.id, all_players, geolocation, selectable_count_at_selection
        )

    def begin_court_change(self) -> bool:
        """Start picking a different court after a successful assignment."""
        state = self.state
        outcome = state.last_outcome
        if not state.can_change_court or outcome is None or not outcome.court_number:
            return False
        state.original_court_data = outcome.replaced_group
        state.is_changing_court = True
        return True

    # ── Paths ──────────────────────────────────────────────────────────

    async def _assign_from_waitlist(
        self,
        entry_id: str,
        court_number: int,
        court_id: str,
        geolocation: Geolocation | None,
    ) -> AssignmentOutcome:
        state = self.state
        logger.info("Assigning waitlist entry %s to court %s", entry_id, court_number)
        try:
            result = await self._backend.assign_from_waitlist(entry_id, court_id, geolocation)
        except BackendError as exc:
            logger.exception("assign_from_waitlist failed for entry %s", entry_id)
            state.current_waitlist_entry_id = None
            self._ui.toast(str(exc) or "Failed to assign court from waitlist", "error")
            return AssignmentOutcome(
                ok=False, code=BACKEND_ERROR, message=str(exc), court_number=court_number,
                from_waitlist=True,
            )

        if not result.ok:
            return await self._handle_failure(
                result, court_number, from_waitlist=True,
                default_message="Failed to assign court from waitlist",
            )

        state.current_waitlist_entry_id = None
        state.has_waitlist_priority = False
        if result.session and result.session.participant_details:
            state.current_group = list(result.session.participant_details)

        # Waitlist assignments are final: no court change.
        outcome = self._success_outcome(result, court_number, allow_change=False, from_waitlist=True)
        return await self._commit_success(outcome)

    async def _assign_direct(
        self,
        court_number: int,
        court_id: str,
        players: list[Player],
        geolocation: Geolocation | None,
        selectable_count_at_selection: int | None,
    ) -> AssignmentOutcome:
        group_type = direct_assignment_group_type(len(players))
        logger.info(
            "Assigning %d player(s) to court %s as %s", len(players), court_number, group_type
        )
        try:
            result = await self._backend.assign_court_with_players(
                court_id, players, group_type, geolocation
            )
        except BackendError as exc:
            logger.exception("assign_court_with_players failed for court %s", court_number)
            self._ui.toast(str(exc) or "Failed to assign court. Please try again.", "error")
            return AssignmentOutcome(
                ok=False, code=BACKEND_ERROR, message=str(exc), court_number=court_number,
            )

        if not result.ok:
            return await self._handle_failure(
                result, court_number, from_waitlist=False,
                default_message="Failed to assign court",
            )

        allow_change = (
            selectable_count_at_selection is not None and selectable_count_at_selection > 1
        )
        outcome = self._success_outcome(result, court_number, allow_change=allow_change, from_waitlist=False)
        return await self._commit_success(outcome)

    # ── Outcomes ───────────────────────────────────────────────────────

    async def _handle_failure(
        self,
        result: CommandResult,
        court_number: int,
        *,
        from_waitlist: bool,
        default_message: str,
    ) -> AssignmentOutcome:
        state = self.state
        failed = AssignmentOutcome(
            ok=False,
            code=result.code,
            message=result.message,
            court_number=court_number,
            from_waitlist=from_waitlist,
        )

        if result.code == COURT_OCCUPIED:
            logger.warning("Court %s was taken before the assignment landed", court_number)
            self._ui.toast("This court was just taken. Refreshing...", "warning")
            if from_waitlist:
                state.current_waitlist_entry_id = None
            await self._refresh_board()
            return failed

        if self._is_mobile and result.message and "Location required" in result.message:
            state.gps_failed_prompt = True
            return failed.model_copy(update={"code": LOCATION_REQUIRED})

        logger.info("Assignment to court %s rejected: %s %s", court_number, result.code, result.message)
        self._ui.toast(result.message or default_message, "error")
        if from_waitlist:
            state.current_waitlist_entry_id = None
        return failed

    def _success_outcome(
        self,
        result: CommandResult,
        court_number: int,
        *,
        allow_change: bool,
        from_waitlist: bool,
    ) -> AssignmentOutcome:
        session = result.session
        displacement = result.displacement
        replaced_group = None
        if displacement is not None:
            replaced_group = ReplacedGroup(
                players=list(displacement.participants),
                end_time=displacement.restore_until,
            )

        is_time_limited = result.is_time_limited or result.is_inherited_end_time
        time_limit_reason = result.time_limit_reason or ("block" if is_time_limited else None)

        return AssignmentOutcome(
            ok=True,
            court_number=court_number,
            session_id=session.id if session else None,
            assigned_end_time=session.scheduled_end_at if session else None,
            displacement=displacement,
            replaced_group=replaced_group,
            is_time_limited=is_time_limited,
            time_limit_reason=time_limit_reason,
            can_change_court=allow_change,
            change_time_remaining=self._change_court_timeout if allow_change else 0,
            from_waitlist=from_waitlist,
        )

    async def _commit_success(self, outcome: AssignmentOutcome) -> AssignmentOutcome:
        state = self.state
        state.last_outcome = outcome
        state.can_change_court = outcome.can_change_court
        state.change_time_remaining = outcome.change_time_remaining
        state.is_changing_court = False
        state.original_court_data = None
        logger.info(
            "Court %s assigned (session %s, waitlist=%s)",
            outcome.court_number,
            outcome.session_id,
            outcome.from_waitlist,
        )

        self._start_timers(outcome)
        await self._refresh_board()
        return outcome

    # ── Helpers ────────────────────────────────────────────────────────

    def _run_guard(self, result: GuardResult) -> AssignmentOutcome | None:
        if result.ok:
            return None
        logger.debug("Assignment guard %s rejected the request", result.kind)
        dispatch_ui_action(self._ui, result.ui)
        return AssignmentOutcome(ok=False, code=result.kind)

    async def _confirm_block_conflict(self, court_number: int, duration: int, now: datetime) -> bool:
        blocks = self._board.snapshot.blocks
        if not has_soon_block_conflict(blocks, court_number, now, duration):
            return True
        status = get_court_block_status(blocks, court_number, now)
        if status is None or status.is_current:
            return True

        minutes = minutes_until(status.start_time, now)
        return await self._ui.confirm(
            f"This court has a block starting in {minutes} minutes ({status.reason or 'Blocked'}). "
            f"You may not get your full {duration} minutes.\n\n"
            "Do you want to take this court anyway?"
        )

    async def _geolocation(self) -> Geolocation | None:
        if not self._is_mobile or self._location_provider is None:
            return None
        return await self._location_provider()

    async def _refresh_board(self) -> None:
        try:
            await self._board.refresh()
        except Exception:
            logger.warning("Board refresh after assignment failed", exc_info=True)

    # ── Timers ─────────────────────────────────────────────────────────

    def _start_timers(self, outcome: AssignmentOutcome) -> None:
        if outcome.can_change_court and self._change_court_timeout > 0:
            self._countdown_task = asyncio.create_task(
                self._change_court_countdown(), name="change-court-countdown"
            )
        if not self.state.mobile_flow and self._auto_reset > 0:
            self._reset_task = asyncio.create_task(self._auto_reset_later(), name="success-reset")

    async def _change_court_countdown(self) -> None:
        state = self.state
        while state.change_time_remaining > 0:
            await asyncio.sleep(1)
            state.change_time_remaining -= 1
        state.can_change_court = False

    async def _auto_reset_later(self) -> None:
        await asyncio.sleep(self._auto_reset)
        self._reset_task = None
        self.reset()

    def _cancel_timers_nowait(self) -> None:
        current = asyncio.current_task() if _has_running_loop() else None
        for task in (self._countdown_task, self._reset_task):
            if task is not None and task is not current:
                task.cancel()
        self._countdown_task = None
        self._reset_task = None

    async def _cancel_timers(self) -> None:
        tasks = [t for t in (self._countdown_task, self._reset_task) if t is not None]
        self._cancel_timers_nowait()
        for task in tasks:
            if task is asyncio.current_task():
                continue
            with contextlib.suppress(asyncio.CancelledError):
                await task


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
