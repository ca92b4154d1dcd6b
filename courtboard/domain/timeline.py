"""
Court availability timeline.

For every court that can be offered to the waitlist, compute the next
moment it becomes usable:

1.  Tournament courts are skipped entirely.
2.  Courts under an active wet block are parked until closing time.
3.  Otherwise start from *now* (or the session's scheduled end).
4.  Walk past blocks, treating each one as starting a registration buffer
    early, until the court is clear.
5.  If the clear gap before the next block is too short to be useful,
    jump past that block as well and repeat.

Everything here is pure: inputs are never mutated and the clock is
always passed in.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from courtboard.config import MIN_USEFUL_SESSION_MINUTES, REGISTRATION_BUFFER_MINUTES
from courtboard.models import Block, Court, TimelineEntry


def blocks_for_court(blocks: Iterable[Block], court_number: int) -> list[Block]:
    """Non-wet blocks on one court, ordered by start time."""
    return sorted(
        (b for b in blocks if b.court_number == court_number and not b.is_wet_court),
        key=lambda b: b.start_time,
    )


def is_wet_now(blocks: Iterable[Block], court_number: int, now: datetime) -> bool:
    return any(
        b.is_wet_court and b.court_number == court_number and b.start_time <= now < b.end_time
        for b in blocks
    )


def next_block_after(court_blocks: Sequence[Block], after: datetime) -> Block | None:
    """The earliest block starting strictly after *after*."""
    upcoming = [b for b in court_blocks if b.start_time > after]
    if not upcoming:
        return None
    return min(upcoming, key=lambda b: b.start_time)


def _skip_overlapping(
    base: datetime,
    court_blocks: Sequence[Block],
    buffer: timedelta,
) -> datetime:
    # Blocks may be back-to-back, so keep going until a full pass moves nothing.
    advanced = True
    while advanced:
        advanced = False
        for block in court_blocks:
            if block.start_time - buffer <= base < block.end_time:
                base = block.end_time
                advanced = True
    return base


def court_available_at(
    court: Court | None,
    court_blocks: Sequence[Block],
    now: datetime,
    *,
    registration_buffer: timedelta,
    min_useful_session: timedelta,
) -> datetime:
    """Next usable moment for a single (non-wet, non-tournament) court."""
    base = now
    session = court.session if court else None
    if session and session.scheduled_end_at and session.scheduled_end_at > base:
        base = session.scheduled_end_at

    base = _skip_overlapping(base, court_blocks, registration_buffer)

    while True:
        upcoming = next_block_after(court_blocks, base)
        if upcoming is None or upcoming.start_time - base >= min_useful_session:
            return base
        base = _skip_overlapping(upcoming.end_time, court_blocks, registration_buffer)


def build_timeline(
    courts: Sequence[Court],
    blocks: Sequence[Block],
    now: datetime,
    closing_time: datetime,
    *,
    total_courts: int | None = None,
    wet_courts: Iterable[int] = (),
    registration_buffer_minutes: int = REGISTRATION_BUFFER_MINUTES,
    min_useful_session_minutes: int = MIN_USEFUL_SESSION_MINUTES,
) -> list[TimelineEntry]:
    """
    Return one TimelineEntry per offerable court, earliest first.

    Ties on ``available_at`` keep ascending court-number order.
    *wet_courts* lists courts marked wet outside of block data (wet mode);
    they are parked until *closing_time* just like courts under a wet block.
    """
    total = len(courts) if total_courts is None else total_courts
    by_number = {c.number: c for c in courts}
    wet_set = set(wet_courts)
    buffer = timedelta(minutes=registration_buffer_minutes)
    min_useful = timedelta(minutes=min_useful_session_minutes)

    timeline: list[TimelineEntry] = []
    for n in range(1, total + 1):
        court = by_number.get(n)
        if court and court.session and court.session.is_tournament:
            continue

        if n in wet_set or is_wet_now(blocks, n, now):
            timeline.append(TimelineEntry(court_number=n, available_at=closing_time))
            continue

        available_at = court_available_at(
            court,
            blocks_for_court(blocks, n),
            now,
            registration_buffer=buffer,
            min_useful_session=min_useful,
        )
        timeline.append(TimelineEntry(court_number=n, available_at=available_at))

    timeline.sort(key=lambda e: e.available_at)
    return timeline
