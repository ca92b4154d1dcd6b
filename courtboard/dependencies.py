import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import Depends, HTTPException, status

from courtboard.config import closing_time_for
from courtboard.models import BoardSnapshot
from courtboard.services.registry import registry

logger = logging.getLogger(__name__)


# ── Clock ──────────────────────────────────────────────────────────────────


def get_now() -> datetime:
    return datetime.now(UTC)


Now = Annotated[datetime, Depends(get_now)]


def get_closing_time(now: Now) -> datetime:
    return closing_time_for(now)


ClosingTime = Annotated[datetime, Depends(get_closing_time)]


# ── Board ──────────────────────────────────────────────────────────────────


def get_board() -> BoardSnapshot:
    store = registry.board
    if not store.is_populated:
        logger.debug("Board requested before the first snapshot arrived")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Board not loaded yet. Please retry shortly.",
        )
    return store.snapshot


Board = Annotated[BoardSnapshot, Depends(get_board)]


def get_wet_court_numbers() -> tuple[int, ...]:
    """Courts marked wet by an active wet-mode event, if any."""
    state = registry.wet_courts.state
    return state.wet_court_numbers if state.is_active else ()


WetCourtNumbers = Annotated[tuple[int, ...], Depends(get_wet_court_numbers)]
