"""
Wet-courts (rain) emergency actions.

Each action follows the same sequence around a backend call:

    WetOpStarted → backend → state change (or WetOpFailed) → WetOpSucceeded

Only a successful backend call publishes a ``wetCourts`` DataUpdate and
triggers the refresh callback.  Errors end up in ``state.error`` and are
never raised.  An action started while another is running returns the
current state without calling the backend.
"""

from __future__ import annotations

import inspect
import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from courtboard.config import COURT_COUNT, DEVICE_ID, WET_DURATION_MINUTES, WET_REASON
from courtboard.domain.wet_courts import (
    INITIAL_WET_STATE,
    WetAction,
    WetActivated,
    WetCourtCleared,
    WetCourtsClearedAll,
    WetDeactivated,
    WetOpFailed,
    WetOpStarted,
    WetOpSucceeded,
    wet_courts_reducer,
)
from courtboard.models import WetCourtsResult, WetOp, WetState
from courtboard.services.backend import CourtBackend
from courtboard.services.board import BoardStore
from courtboard.services.events import DataUpdate, EventChannel

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[object] | object]


def make_idempotency_key() -> str:
    return f"wet-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class WetCourtsController:
    def __init__(
        self,
        backend: CourtBackend,
        events: EventChannel,
        board: BoardStore,
        *,
        device_id: str = DEVICE_ID,
        on_refresh: RefreshCallback | None = None,
        court_count: int = COURT_COUNT,
        duration_minutes: int = WET_DURATION_MINUTES,
        reason: str = WET_REASON,
    ) -> None:
        self._backend = backend
        self._events = events
        self._board = board
        self._device_id = device_id
        self._on_refresh = on_refresh if on_refresh is not None else board.refresh
        self._court_count = court_count
        self._duration_minutes = duration_minutes
        self._reason = reason
        self._state = INITIAL_WET_STATE

    # ── State ──────────────────────────────────────────────────────────

    @property
    def state(self) -> WetState:
        return self._state

    def dispatch(self, action: WetAction) -> WetState:
        self._state = wet_courts_reducer(self._state, action)
        return self._state

    # ── Actions ────────────────────────────────────────────────────────

    async def activate(self) -> WetState:
        """Mark every court wet and suspend the normal blocks."""
        if not self._begin("activate"):
            return self._state
        result = await self._call(
            "activate",
            self._backend.mark_wet_courts(
                device_id=self._device_id,
                duration_minutes=self._duration_minutes,
                reason=self._reason,
                idempotency_key=make_idempotency_key(),
            ),
            "Failed to activate wet courts",
        )
        if result is None:
            return self._state

        numbers = result.court_numbers or list(range(1, self._court_count + 1))
        suspended = tuple(b for b in self._board.snapshot.blocks if not b.is_wet_court)
        self.dispatch(WetActivated(tuple(numbers), suspended))
        self.dispatch(WetOpSucceeded())
        logger.info("Wet mode activated for courts %s", self._state.wet_court_numbers)
        await self._after_success()
        return self._state

    async def deactivate(self) -> WetState:
        """Clear every wet block and leave wet mode."""
        if not self._begin("deactivate"):
            return self._state
        result = await self._call(
            "deactivate",
            self._backend.clear_wet_courts(device_id=self._device_id),
            "Failed to deactivate wet courts",
        )
        if result is None:
            return self._state

        self.dispatch(WetDeactivated())
        self.dispatch(WetOpSucceeded())
        logger.info("Wet mode deactivated (%s blocks cleared)", result.blocks_cleared)
        await self._after_success()
        return self._state

    async def clear_court(self, court_number: int) -> WetState:
        """Mark one court dry.  Drying the last court also leaves wet mode."""
        if not self._begin("clearOne"):
            return self._state

        court = self._board.court(court_number)
        if court is None or not court.id:
            logger.warning("Cannot clear wet court %s: not on the board", court_number)
            return self.dispatch(WetOpFailed(f"Court {court_number} not found"))

        becomes_empty = not [n for n in self._state.wet_court_numbers if n != court_number]
        result = await self._call(
            "clearOne",
            self._backend.clear_wet_courts(device_id=self._device_id, court_ids=[court.id]),
            "Failed to clear wet court",
        )
        if result is None:
            return self._state

        self.dispatch(WetCourtCleared(court_number))
        if becomes_empty:
            self.dispatch(WetDeactivated())
        self.dispatch(WetOpSucceeded())
        logger.info("Wet court %s cleared", court_number)
        await self._after_success()
        return self._state

    async def clear_all(self) -> WetState:
        """Mark every court dry without leaving wet mode."""
        if not self._begin("clearAll"):
            return self._state
        result = await self._call(
            "clearAll",
            self._backend.clear_wet_courts(device_id=self._device_id),
            "Failed to clear all wet courts",
        )
        if result is None:
            return self._state

        self.dispatch(WetCourtsClearedAll())
        self.dispatch(WetOpSucceeded())
        logger.info("All wet courts cleared")
        await self._after_success()
        return self._state

    # ── Helpers ────────────────────────────────────────────────────────

    def _begin(self, op: WetOp) -> bool:
        if self._state.is_busy:
            logger.info("Wet courts %s ignored: %s still running", op, self._state.busy_op)
            return False
        self.dispatch(WetOpStarted(op))
        return True

    async def _call(
        self,
        op: WetOp,
        call: Awaitable[WetCourtsResult],
        default_error: str,
    ) -> WetCourtsResult | None:
        try:
            result = await call
        except Exception as exc:
            logger.exception("Wet courts %s failed", op)
            self.dispatch(WetOpFailed(str(exc) or default_error))
            return None
        if not result.ok:
            logger.warning("Wet courts %s rejected: %s", op, result.message)
            self.dispatch(WetOpFailed(result.message or default_error))
            return None
        return result

    async def _after_success(self) -> None:
        self._events.publish(DataUpdate("wetCourts", list(self._state.wet_court_numbers)))
        try:
            outcome = self._on_refresh()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.warning("Refresh after wet courts change failed", exc_info=True)
