"""
Views derived from the current board (court timeline, waitlist wait
estimates, selectable courts) and the backend's board-changed signal.
"""

from fastapi import APIRouter, Query, status

from courtboard.config import AVG_GAME_MINUTES
from courtboard.dependencies import Board, ClosingTime, Now, WetCourtNumbers
from courtboard.domain.availability import get_free_courts_info, get_selectable_courts
from courtboard.domain.timeline import build_timeline
from courtboard.domain.waitlist import estimate_waitlist
from courtboard.models import (
    RefreshSignalResponse,
    SelectableCourtsResponse,
    TimelineResponse,
    WaitlistEstimatesResponse,
)
from courtboard.services.registry import registry

router = APIRouter(prefix="/api/board", tags=["board"])


@router.get(
    "/timeline",
    response_model=TimelineResponse,
    operation_id="getCourtTimeline",
    summary="Next available time for every offerable court",
)
async def get_timeline(
    board: Board,
    now: Now,
    closing_time: ClosingTime,
    wet_courts: WetCourtNumbers,
) -> TimelineResponse:
    timeline = build_timeline(
        board.courts,
        board.blocks,
        now,
        closing_time,
        wet_courts=wet_courts,
    )
    return TimelineResponse(now=now, closing_time=closing_time, timeline=timeline)


@router.get(
    "/waitlist-estimates",
    response_model=WaitlistEstimatesResponse,
    operation_id="getWaitlistEstimates",
    summary="Estimated wait and predicted court for each waiting group",
)
async def get_waitlist_estimates(
    board: Board,
    now: Now,
    closing_time: ClosingTime,
    wet_courts: WetCourtNumbers,
    avg_game_minutes: int = Query(AVG_GAME_MINUTES, ge=1, le=240),
) -> WaitlistEstimatesResponse:
    estimates = estimate_waitlist(
        board,
        now,
        closing_time,
        avg_game_minutes=avg_game_minutes,
        wet_courts=wet_courts,
    )
    return WaitlistEstimatesResponse(now=now, estimates=estimates)


@router.get(
    "/selectable-courts",
    response_model=SelectableCourtsResponse,
    operation_id="getSelectableCourts",
    summary="Courts a walk-up group can choose right now",
)
async def get_selectable(
    board: Board,
    now: Now,
    wet_courts: WetCourtNumbers,
) -> SelectableCourtsResponse:
    info = get_free_courts_info(board, now, wet_courts=wet_courts)
    selectable, showing_overtime = get_selectable_courts(info, board.blocks, now)
    return SelectableCourtsResponse(
        now=now,
        selectable=selectable,
        showing_overtime=showing_overtime,
        info=info,
    )


@router.post(
    "/refresh-signal",
    response_model=RefreshSignalResponse,
    status_code=status.HTTP_202_ACCEPTED,
    operation_id="signalBoardChanged",
    summary="Backend notification that the board changed",
)
async def signal_board_changed() -> RefreshSignalResponse:
    return RefreshSignalResponse(scheduled=registry.request_refresh())
