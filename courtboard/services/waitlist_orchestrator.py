"""
Join-waitlist flow: validate the group, make sure nobody is already on a
court or in the queue, then add the group to the backend waitlist.
"""

from __future__ import annotations

import logging

from courtboard.config import IS_MOBILE
from courtboard.domain.groups import validate_group_compat, waitlist_join_group_type
from courtboard.domain.guards import GroupCompatValidator
from courtboard.models import BoardSnapshot, Player, WaitlistJoinOutcome
from courtboard.services.backend import BackendError, CourtBackend
from courtboard.services.board import BoardStore
from courtboard.services.orchestrator import InFlightCommands, LocationProvider, RegistrationState
from courtboard.services.ui import RegistrationUI

logger = logging.getLogger(__name__)

ALREADY_JOINING = "ALREADY_JOINING"
NO_PLAYERS = "NO_PLAYERS"
GROUP_INVALID = "GROUP_INVALID"
ALREADY_PLAYING = "ALREADY_PLAYING"
LOCATION_REQUIRED = "LOCATION_REQUIRED"
BACKEND_ERROR = "BACKEND_ERROR"


def find_registered_player(board: BoardSnapshot, players: list[Player]) -> Player | None:
    """The first player already on a court or already waiting, if any."""
    registered: set[str] = set()
    for court in board.courts:
        if court.session:
            registered.update(p.id for p in court.session.players if p.id)
    for entry in board.waitlist:
        registered.update(p.id for p in entry.players if p.id)
    return next((p for p in players if p.id and p.id in registered), None)


class WaitlistOrchestrator:
    def __init__(
        self,
        backend: CourtBackend,
        ui: RegistrationUI,
        board: BoardStore,
        *,
        state: RegistrationState | None = None,
        is_mobile: bool = IS_MOBILE,
        location_provider: LocationProvider | None = None,
        validate_group_compat: GroupCompatValidator = validate_group_compat,
        in_flight: InFlightCommands | None = None,
    ) -> None:
        self._backend = backend
        self._ui = ui
        self._board = board
        self.state = state or RegistrationState()
        self._in_flight = in_flight if in_flight is not None else InFlightCommands()
        self._is_mobile = is_mobile
        self._location_provider = location_provider
        self._validate = validate_group_compat

    async def join(self, group: list[Player] | None = None) -> WaitlistJoinOutcome:
        state = self.state
        if state.is_joining_waitlist:
            logger.debug("Waitlist join already in progress, ignoring duplicate request")
            return WaitlistJoinOutcome(ok=False, code=ALREADY_JOINING)

        group = list(group if group is not None else state.current_group)
        if not group:
            logger.debug("Waitlist join with no players selected")
            return WaitlistJoinOutcome(ok=False, code=NO_PLAYERS)

        players = [p for p in group if p.id.strip() and p.name.strip()]
        guests = sum(1 for p in group if p.is_guest)

        validation = self._validate(players, guests)
        if not validation.ok:
            self._ui.alert("\n".join(validation.errors))
            return WaitlistJoinOutcome(ok=False, code=GROUP_INVALID, message=" ".join(validation.errors))

        playing = find_registered_player(self._board.snapshot, group)
        if playing is not None:
            self._ui.alert(f"{playing.name} is already registered elsewhere.")
            return WaitlistJoinOutcome(ok=False, code=ALREADY_PLAYING)

        group_type = waitlist_join_group_type(len(players))
        keys = [f"player:{p.id}" for p in players]
        if not self._in_flight.claim(keys):
            logger.info("A waitlist join for one of these players is already in flight")
            return WaitlistJoinOutcome(ok=False, code=ALREADY_JOINING)
        state.is_joining_waitlist = True
        try:
            geolocation = None
            if self._is_mobile and self._location_provider is not None:
                geolocation = await self._location_provider()
            result = await self._backend.join_waitlist(players, group_type, geolocation)
        except BackendError:
            logger.exception("join_waitlist failed")
            self._ui.toast("Could not join waitlist", "error")
            return WaitlistJoinOutcome(ok=False, code=BACKEND_ERROR)
        finally:
            state.is_joining_waitlist = False
            self._in_flight.release(keys)

        if not result.ok:
            if self._is_mobile and result.message and "Location required" in result.message:
                state.gps_failed_prompt = True
                return WaitlistJoinOutcome(ok=False, code=LOCATION_REQUIRED, message=result.message)
            logger.info("Waitlist join rejected: %s %s", result.code, result.message)
            self._ui.toast(result.message or "Could not join waitlist", "error")
            return WaitlistJoinOutcome(ok=False, code=result.code, message=result.message)

        position = result.position or 1
        state.waitlist_position = position
        if result.entry_id and state.mobile_flow:
            state.current_waitlist_entry_id = result.entry_id
        logger.info("Group of %d joined the waitlist at position %d", len(players), position)
        self._ui.toast(f"Added to waiting list (position {position})", "success")

        try:
            await self._board.refresh()
        except Exception:
            logger.warning("Board refresh after waitlist join failed", exc_info=True)

        return WaitlistJoinOutcome(
            ok=True, entry_id=result.entry_id, position=position, message=result.message
        )
