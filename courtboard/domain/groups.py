"""
Group-size rules and the default group compatibility validator.

Club rules:
  • a group has 1-4 players (named members plus guests)
  • groups of four play doubles and get the longer session
  • the singles-only court never takes a doubles group
  • the same person cannot appear twice in one group
"""

from __future__ import annotations

from collections.abc import Sequence

from courtboard.config import (
    DOUBLES_DURATION_MINUTES,
    DOUBLES_MIN_PLAYERS,
    SINGLES_DURATION_MINUTES,
    SINGLES_ONLY_COURT,
)
from courtboard.models import GroupType, GroupValidation, Player

MAX_GROUP_SIZE = 4


def session_duration_minutes(player_count: int) -> int:
    """Session length for a group of *player_count* players."""
    if player_count >= DOUBLES_MIN_PLAYERS:
        return DOUBLES_DURATION_MINUTES
    return SINGLES_DURATION_MINUTES


def is_court_eligible_for_group(
    court_number: int,
    player_count: int,
    singles_only_court: int = SINGLES_ONLY_COURT,
) -> bool:
    return not (court_number == singles_only_court and player_count >= DOUBLES_MIN_PLAYERS)


def direct_assignment_group_type(player_count: int) -> GroupType:
    # Direct court assignment classifies up to three players as singles.
    return "singles" if player_count <= 3 else "doubles"


def waitlist_join_group_type(player_count: int) -> GroupType:
    # Joining the waitlist classifies only one or two players as singles.
    return "singles" if player_count <= 2 else "doubles"


def _player_key(player: Player) -> str:
    if player.id:
        return f"id:{player.id}"
    return f"name:{player.name.strip().lower()}"


def validate_group_compat(players: Sequence[Player], guests: int) -> GroupValidation:
    """
    Validate a group before it is sent to the backend.

    *players* are the named (non-guest) members; *guests* is the separately
    tracked guest count.  Guest rows inside *players* and the guest count are
    two views of the same guests, so the larger of the two is used.
    """
    errors: list[str] = []

    guest_rows = sum(1 for p in players if p.is_guest)
    named = [p for p in players if not p.is_guest and p.name.strip()]

    if not named and max(guest_rows, guests) < 1:
        errors.append("Enter at least one player.")
    if guests < 0:
        errors.append("Guests must be 0 or more.")

    total = len(named) + max(guest_rows, max(0, guests))
    if total < 1:
        errors.append("Group size must be at least 1.")
    if total > MAX_GROUP_SIZE:
        errors.append(f"Maximum group size is {MAX_GROUP_SIZE}.")

    keys = [_player_key(p) for p in players]
    if len(keys) != len(set(keys)):
        errors.append("Duplicate players are not allowed in the same group.")

    return GroupValidation(ok=not errors, errors=errors)
