"""
Pure state transitions for wet-court (rain) mode.

The reducer never performs I/O.  WetCourtsController in
courtboard.services.wet_courts sequences these actions around backend
calls.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from courtboard.models import Block, WetOp, WetState


@dataclass(frozen=True)
class WetOpStarted:
    op: WetOp


@dataclass(frozen=True)
class WetOpSucceeded:
    pass


@dataclass(frozen=True)
class WetOpFailed:
    error: str


@dataclass(frozen=True)
class WetActivated:
    court_numbers: tuple[int, ...]
    suspended_blocks: tuple[Block, ...] | None = field(default=None)


@dataclass(frozen=True)
class WetDeactivated:
    pass


@dataclass(frozen=True)
class WetCourtCleared:
    court_number: int


@dataclass(frozen=True)
class WetCourtsClearedAll:
    pass


WetAction = (
    WetOpStarted
    | WetOpSucceeded
    | WetOpFailed
    | WetActivated
    | WetDeactivated
    | WetCourtCleared
    | WetCourtsClearedAll
)

INITIAL_WET_STATE = WetState()


def normalize_court_numbers(numbers: Iterable[int]) -> tuple[int, ...]:
    return tuple(sorted(set(numbers)))


def wet_courts_reducer(state: WetState, action: WetAction) -> WetState:
    match action:
        case WetOpStarted(op=op):
            return state.model_copy(update={"is_busy": True, "busy_op": op, "error": None})
        case WetOpSucceeded():
            return state.model_copy(update={"is_busy": False, "busy_op": None, "error": None})
        case WetOpFailed(error=error):
            return state.model_copy(update={"is_busy": False, "busy_op": None, "error": error})
        case WetActivated(court_numbers=numbers, suspended_blocks=suspended):
            update: dict[str, object] = {
                "is_active": True,
                "wet_court_numbers": normalize_court_numbers(numbers),
            }
            if suspended is not None:
                update["suspended_blocks"] = tuple(suspended)
            return state.model_copy(update=update)
        case WetDeactivated():
            return state.model_copy(
                update={"is_active": False, "wet_court_numbers": (), "suspended_blocks": ()}
            )
        case WetCourtCleared(court_number=n):
            # Stays active even when the last court dries; deactivation is explicit.
            remaining = tuple(c for c in state.wet_court_numbers if c != n)
            return state.model_copy(update={"wet_court_numbers": remaining})
        case WetCourtsClearedAll():
            return state.model_copy(update={"wet_court_numbers": ()})
        case _:
            return state
