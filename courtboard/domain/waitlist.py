"""
Waitlist wait-time simulation.

Greedily walks the waitlist in position order and hands each group the
earliest court it is allowed to use on a working copy of the timeline.
A matched court is put back into the timeline one average game later,
so later groups see the court the earlier group is now playing on.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from courtboard.config import (
    AVG_GAME_MINUTES,
    COURT_COUNT,
    DEFERRED_SLACK_MINUTES,
    MIN_USEFUL_SESSION_MINUTES,
    REGISTRATION_BUFFER_MINUTES,
)
from courtboard.domain.groups import is_court_eligible_for_group, session_duration_minutes
from courtboard.domain.timeline import blocks_for_court, build_timeline, next_block_after
from courtboard.models import Block, BoardSnapshot, TimelineEntry, WaitlistEntry, WaitlistMatch


def minutes_until(moment: datetime, now: datetime) -> int:
    """Whole minutes from *now* until *moment*, rounded up, never negative."""
    return max(0, math.ceil((moment - now).total_seconds() / 60))


def _has_full_session(
    entry: TimelineEntry,
    blocks: Sequence[Block],
    session_minutes: int,
) -> bool:
    upcoming = next_block_after(blocks_for_court(blocks, entry.court_number), entry.available_at)
    if upcoming is None:
        return True
    required = timedelta(minutes=session_minutes + DEFERRED_SLACK_MINUTES)
    return upcoming.start_time - entry.available_at >= required


def _requeue(working: list[TimelineEntry], entry: TimelineEntry) -> None:
    # Insert after every entry available at or before the new time.
    index = next(
        (i for i, t in enumerate(working) if t.available_at > entry.available_at),
        len(working),
    )
    working.insert(index, entry)


def match_waitlist(
    timeline: Sequence[TimelineEntry],
    waitlist: Iterable[WaitlistEntry],
    avg_game_minutes: int,
    blocks: Sequence[Block],
    now: datetime,
    *,
    total_courts: int = COURT_COUNT,
) -> list[WaitlistMatch]:
    """
    Predict the court and wait for every waitlist entry, in position order.

    *timeline* is not modified.  When no eligible court exists for a group,
    a rough ``ordinal * avg_game / total_courts`` estimate is used instead.
    """
    working = [entry.model_copy() for entry in timeline]
    total = max(total_courts, 1)
    avg_game = timedelta(minutes=avg_game_minutes)

    matches: list[WaitlistMatch] = []
    for ordinal, group in enumerate(sorted(waitlist, key=lambda w: w.position), start=1):
        player_count = len(group.players)
        duration = session_duration_minutes(player_count)

        found: int | None = None
        for i, candidate in enumerate(working):
            if not is_court_eligible_for_group(candidate.court_number, player_count):
                continue
            if group.deferred and not _has_full_session(candidate, blocks, duration):
                continue
            found = i
            break

        if found is None:
            matches.append(
                WaitlistMatch(
                    entry_id=group.id,
                    position=group.position,
                    estimated_minutes=math.ceil(ordinal * avg_game_minutes / total),
                )
            )
            continue

        matched = working.pop(found)
        matches.append(
            WaitlistMatch(
                entry_id=group.id,
                position=group.position,
                court_number=matched.court_number,
                available_at=matched.available_at,
                estimated_minutes=minutes_until(matched.available_at, now),
            )
        )
        _requeue(
            working,
            TimelineEntry(
                court_number=matched.court_number,
                available_at=matched.available_at + avg_game,
            ),
        )

    return matches


def simulate(
    timeline: Sequence[TimelineEntry],
    waitlist: Iterable[WaitlistEntry],
    avg_game_minutes: int,
    blocks: Sequence[Block],
    now: datetime,
    *,
    total_courts: int = COURT_COUNT,
) -> list[int]:
    """Estimated minutes until each waitlist entry gets a court."""
    return [
        m.estimated_minutes
        for m in match_waitlist(
            timeline, waitlist, avg_game_minutes, blocks, now, total_courts=total_courts
        )
    ]


def estimate_waitlist(
    board: BoardSnapshot,
    now: datetime,
    closing_time: datetime,
    *,
    avg_game_minutes: int = AVG_GAME_MINUTES,
    total_courts: int | None = None,
    wet_courts: Iterable[int] = (),
    registration_buffer_minutes: int = REGISTRATION_BUFFER_MINUTES,
    min_useful_session_minutes: int = MIN_USEFUL_SESSION_MINUTES,
) -> list[WaitlistMatch]:
    """Build the timeline for *board* and run the waitlist against it."""
    total = len(board.courts) if total_courts is None else total_courts
    timeline = build_timeline(
        board.courts,
        board.blocks,
        now,
        closing_time,
        total_courts=total,
        wet_courts=wet_courts,
        registration_buffer_minutes=registration_buffer_minutes,
        min_useful_session_minutes=min_useful_session_minutes,
    )
    return match_waitlist(
        timeline, board.waitlist, avg_game_minutes, board.blocks, now, total_courts=total
    )
