"""
Pre-flight checks for court assignment.

Each guard returns a GuardResult.  A failed result carries the UI action
to show, or no action when the rejection should be silent.  Guards are
evaluated in a fixed order by the orchestrator and stop at the first
failure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, time
from zoneinfo import ZoneInfo

from courtboard.config import facility_tz
from courtboard.models import GroupValidation, GuardResult, OperatingHours, Player, UIAction

logger = logging.getLogger(__name__)

ALREADY_ASSIGNING = "ALREADY_ASSIGNING"
CLUB_CLOSED = "CLUB_CLOSED"
CLUB_NOT_OPEN = "CLUB_NOT_OPEN"
INVALID_COURT = "INVALID_COURT"
NO_PLAYERS = "NO_PLAYERS"
GROUP_INVALID = "GROUP_INVALID"

GroupCompatValidator = Callable[[Sequence[Player], int], GroupValidation]


def _parse_clock(value: str) -> time:
    parts = [int(p) for p in value.split(":")]
    while len(parts) < 3:
        parts.append(0)
    return time(parts[0], parts[1], parts[2])


def _format_12h(value: time) -> str:
    hour = value.hour % 12 or 12
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{hour}:{value.minute:02d} {suffix}"


def day_of_week(moment: datetime) -> int:
    """0=Sunday ... 6=Saturday."""
    return (moment.weekday() + 1) % 7


def guard_not_assigning(is_assigning: bool) -> GuardResult:
    if is_assigning:
        return GuardResult.failed(ALREADY_ASSIGNING)
    return GuardResult.passed()


def guard_operating_hours(
    operating_hours: Sequence[OperatingHours] | None,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> GuardResult:
    """
    Reject when the club is closed today or has not opened yet.

    Missing hours data, or no row for today, counts as open.
    """
    if not operating_hours:
        return GuardResult.passed()

    local = now.astimezone(tz or facility_tz())
    today = next((h for h in operating_hours if h.day_of_week == day_of_week(local)), None)
    if today is None:
        return GuardResult.passed()

    if today.is_closed:
        return GuardResult.failed(
            CLUB_CLOSED,
            UIAction(action="toast", message="The club is closed today.", level="warning"),
        )

    opens_at = _parse_clock(today.opens_at)
    if local.time() < opens_at:
        return GuardResult.failed(
            CLUB_NOT_OPEN,
            UIAction(
                action="toast",
                message=(
                    "The club is not open yet. Court registration will be available at "
                    f"{_format_12h(opens_at)}."
                ),
                level="warning",
            ),
        )
    return GuardResult.passed()


def guard_court_number(court_number: int | None, court_count: int) -> GuardResult:
    if court_number is None or not 1 <= court_number <= court_count:
        return GuardResult.failed(
            INVALID_COURT,
            UIAction(
                action="alert",
                message=f"Invalid court number. Please select a court between 1 and {court_count}.",
            ),
        )
    return GuardResult.passed()


def guard_group(current_group: Sequence[Player] | None) -> GuardResult:
    if not current_group:
        return GuardResult.failed(
            NO_PLAYERS,
            UIAction(action="alert", message="No players in group. Please add players first."),
        )
    return GuardResult.passed()


def guard_group_compat(
    players: Sequence[Player],
    guests: int,
    validate: GroupCompatValidator,
) -> GuardResult:
    result = validate(players, guests)
    if not result.ok:
        logger.debug("Group rejected: %s", result.errors)
        return GuardResult.failed(
            GROUP_INVALID,
            UIAction(action="alert", message="\n".join(result.errors)),
        )
    return GuardResult.passed()
