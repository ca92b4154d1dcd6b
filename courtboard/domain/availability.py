"""
Court classification at a single moment: free, occupied, overtime or wet.

The kiosk offers free courts first.  Only when every court is taken does
it fall back to overtime courts, whose groups can be displaced.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from courtboard.domain.timeline import blocks_for_court, is_wet_now
from courtboard.models import Block, BoardSnapshot, CourtBlockStatus, FreeCourtsInfo


def is_blocked_now(blocks: Iterable[Block], court_number: int, now: datetime) -> bool:
    """True while a non-wet block is in progress on the court."""
    return any(b.start_time <= now < b.end_time for b in blocks_for_court(blocks, court_number))


def get_free_courts_info(
    board: BoardSnapshot,
    now: datetime,
    *,
    total_courts: int | None = None,
    wet_courts: Iterable[int] = (),
) -> FreeCourtsInfo:
    total = len(board.courts) if total_courts is None else total_courts
    wet_set = set(wet_courts)
    info = FreeCourtsInfo(total=total)

    for n in range(1, total + 1):
        if n in wet_set or is_wet_now(board.blocks, n, now):
            info.wet.append(n)
            continue
        if is_blocked_now(board.blocks, n, now):
            continue

        court = board.court(n)
        session = court.session if court else None
        if session is None:
            info.free.append(n)
        elif (
            session.scheduled_end_at is not None
            and session.scheduled_end_at <= now
            and not session.is_tournament
        ):
            info.overtime.append(n)
        else:
            info.occupied.append(n)

    return info


def get_selectable_courts(
    info: FreeCourtsInfo,
    blocks: Sequence[Block],
    now: datetime,
) -> tuple[list[int], bool]:
    """
    Courts a walk-up group may pick, and whether they are overtime courts.

    Free courts win; overtime courts are offered only when none are free.
    """
    free = [n for n in info.free if not is_blocked_now(blocks, n, now)]
    if free:
        return free, False
    return list(info.overtime), bool(info.overtime)


def has_soon_block_conflict(
    blocks: Iterable[Block],
    court_number: int,
    now: datetime,
    required_minutes: int,
) -> bool:
    horizon = now + timedelta(minutes=required_minutes)
    return any(
        b.start_time < horizon and b.end_time > now for b in blocks_for_court(blocks, court_number)
    )


def get_court_block_status(
    blocks: Iterable[Block],
    court_number: int,
    now: datetime,
) -> CourtBlockStatus | None:
    """The block in progress on a court, otherwise the next one to start."""
    court_blocks = blocks_for_court(blocks, court_number)

    current = next((b for b in court_blocks if b.start_time <= now < b.end_time), None)
    if current is not None:
        return CourtBlockStatus(
            court_number=court_number,
            is_current=True,
            start_time=current.start_time,
            end_time=current.end_time,
            reason=current.reason,
        )

    upcoming = next((b for b in court_blocks if b.start_time > now), None)
    if upcoming is None:
        return None
    return CourtBlockStatus(
        court_number=court_number,
        is_current=False,
        start_time=upcoming.start_time,
        end_time=upcoming.end_time,
        reason=upcoming.reason,
    )
