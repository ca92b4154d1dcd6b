"""
Court assignment and waitlist join commands.

Each request runs a fresh orchestrator against the shared board; commands
already in flight for the same court, waitlist entry or player are refused
through the registry's shared InFlightCommands.  Any messages the
orchestrator would show on a kiosk are returned as notices; a
block-conflict prompt is answered by ``confirm_block_conflict``.
"""

import logging

from fastapi import APIRouter, Request

from courtboard.dependencies import Now
from courtboard.domain.availability import get_free_courts_info, get_selectable_courts
from courtboard.models import (
    AssignmentRequest,
    AssignmentResponse,
    Geolocation,
    WaitlistJoinRequest,
    WaitlistJoinResponse,
)
from courtboard.rate_limit import MUTATION, limiter
from courtboard.services.orchestrator import CourtAssignmentOrchestrator, RegistrationState
from courtboard.services.registry import registry
from courtboard.services.ui import RecordingUI
from courtboard.services.waitlist_orchestrator import WaitlistOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["assignments"])


def _location_provider(location: Geolocation | None):
    async def provide() -> Geolocation | None:
        return location

    return provide


@router.post(
    "/assignments",
    response_model=AssignmentResponse,
    operation_id="assignCourt",
    summary="Assign a court to a group, directly or from the waitlist",
)
@limiter.limit(MUTATION)
async def assign_court(request: Request, body: AssignmentRequest, now: Now) -> AssignmentResponse:
    board = registry.board
    selectable_count = body.selectable_count_at_selection
    if selectable_count is None:
        info = get_free_courts_info(board.snapshot, now)
        selectable, _ = get_selectable_courts(info, board.snapshot.blocks, now)
        selectable_count = len(selectable)

    ui = RecordingUI(confirm_answer=body.confirm_block_conflict)
    state = RegistrationState(
        current_group=list(body.players),
        current_waitlist_entry_id=body.waitlist_entry_id,
        has_waitlist_priority=body.waitlist_entry_id is not None,
    )
    orchestrator = CourtAssignmentOrchestrator(
        registry.backend,
        ui,
        board,
        state=state,
        location_provider=_location_provider(body.location),
        clock=lambda: now,
        auto_reset_sec=0,
        in_flight=registry.in_flight,
    )
    try:
        outcome = await orchestrator.assign(body.court_number, selectable_count)
    finally:
        await orchestrator.close()

    return AssignmentResponse(
        outcome=outcome,
        notices=ui.notices,
        gps_failed_prompt=state.gps_failed_prompt,
    )


@router.post(
    "/waitlist",
    response_model=WaitlistJoinResponse,
    operation_id="joinWaitlist",
    summary="Add a group to the waitlist",
)
@limiter.limit(MUTATION)
async def join_waitlist(request: Request, body: WaitlistJoinRequest) -> WaitlistJoinResponse:
    ui = RecordingUI()
    state = RegistrationState(current_group=list(body.players))
    orchestrator = WaitlistOrchestrator(
        registry.backend,
        ui,
        registry.board,
        state=state,
        location_provider=_location_provider(body.location),
        in_flight=registry.in_flight,
    )
    outcome = await orchestrator.join()
    return WaitlistJoinResponse(
        outcome=outcome,
        notices=ui.notices,
        gps_failed_prompt=state.gps_failed_prompt,
    )
