"""
HTTP backend – implements the CourtBackend protocol.

Translates backend API responses into our domain models
(courtboard.models). This is the only layer that knows about both
the wire shape and our internal schema.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from courtboard.models import (
    AssignedSession,
    Block,
    BoardSnapshot,
    CommandResult,
    Court,
    Displacement,
    Geolocation,
    GroupType,
    OperatingHours,
    Player,
    Session,
    WaitlistEntry,
    WaitlistJoinResult,
    WetCourtsResult,
)
from courtboard.services.api.api_models import (
    CommandResponse,
    GetBoardResponse,
    WetCourtsResponse,
    WireBlock,
    WireParticipant,
)
from courtboard.services.api.client import BackendApiClient
from courtboard.services.backend import BackendError

logger = logging.getLogger(__name__)

_WET_BLOCK_TYPE = "wet"


# ── Wire → domain ─────────────────────────────────────────────────────────


def _player(p: WireParticipant) -> Player:
    return Player(
        id=p.member_id or "",
        name=p.display_name or p.guest_name or "",
        is_guest=p.type == "guest",
        member_number=p.member_number,
        sponsor=p.charged_to_account_id if p.type == "guest" else None,
        account_id=p.account_id,
    )


def _block(b: WireBlock, court_number: int | None = None) -> Block:
    return Block(
        id=b.id,
        court_number=court_number or b.court_number,
        start_time=b.starts_at,
        end_time=b.ends_at,
        is_wet_court=(b.block_type or "").lower() == _WET_BLOCK_TYPE,
        reason=b.title or b.block_type,
    )


def _board(raw: GetBoardResponse) -> BoardSnapshot:
    courts: list[Court] = []
    blocks: list[Block] = []
    seen_blocks: set[str] = set()

    def add_block(block: Block) -> None:
        if block.id is not None:
            if block.id in seen_blocks:
                return
            seen_blocks.add(block.id)
        blocks.append(block)

    for wc in raw.courts:
        session = None
        if wc.session is not None:
            session = Session(
                id=wc.session.id,
                scheduled_end_at=wc.session.scheduled_end_at,
                is_tournament=wc.session.is_tournament,
                players=[_player(p) for p in wc.session.participants],
            )
        block = _block(wc.block, wc.number) if wc.block is not None else None
        if block is not None:
            add_block(block)
        courts.append(Court(number=wc.number, id=wc.id, session=session, block=block))

    for wb in raw.upcoming_blocks:
        add_block(_block(wb))

    waitlist = sorted(
        (
            WaitlistEntry(
                id=w.id,
                position=w.position,
                deferred=w.deferred,
                players=[_player(p) for p in w.participants],
            )
            for w in raw.waitlist
        ),
        key=lambda w: w.position,
    )

    return BoardSnapshot(
        courts=sorted(courts, key=lambda c: c.number),
        blocks=blocks,
        waitlist=waitlist,
        operating_hours=[OperatingHours.model_validate(h.model_dump()) for h in raw.operating_hours],
        server_now=raw.server_now,
    )


def _command_result(raw: CommandResponse) -> CommandResult:
    session = None
    if raw.session is not None:
        session = AssignedSession(
            id=raw.session.id,
            scheduled_end_at=raw.session.scheduled_end_at,
            participant_details=[_player(p) for p in raw.session.participant_details],
        )
    displacement = None
    if raw.displacement is not None:
        displacement = Displacement.model_validate(raw.displacement.model_dump())
    return CommandResult(
        ok=raw.ok,
        code=raw.code,
        message=raw.message or raw.error,
        session=session,
        displacement=displacement,
        is_time_limited=raw.is_time_limited,
        is_inherited_end_time=raw.is_inherited_end_time,
        time_limit_reason=raw.time_limit_reason,
    )


def _wet_result(raw: WetCourtsResponse) -> WetCourtsResult:
    return WetCourtsResult(
        ok=raw.ok,
        code=raw.code,
        message=raw.message or raw.error,
        court_numbers=raw.court_numbers,
        blocks_cleared=raw.blocks_cleared,
        ends_at=raw.ends_at,
    )


# ── Domain → wire ─────────────────────────────────────────────────────────


def _participant_payload(player: Player) -> dict[str, Any]:
    if player.is_guest:
        return {
            "type": "guest",
            "guest_name": player.name,
            "account_id": player.account_id,
            "charged_to_account_id": player.sponsor or player.account_id,
        }
    return {"type": "member", "member_id": player.id, "account_id": player.account_id}


def _with_location(payload: dict[str, Any], geolocation: Geolocation | None) -> dict[str, Any]:
    if geolocation is not None:
        payload["latitude"] = geolocation.latitude
        payload["longitude"] = geolocation.longitude
    return payload


class ApiCourtBackend:
    """
    Implements the CourtBackend protocol over the backend's JSON API.

    Usage::

        client = BackendApiClient()
        backend = ApiCourtBackend(client)
        board = await backend.get_board()
    """

    def __init__(self, client: BackendApiClient) -> None:
        self._client = client

    async def close(self) -> None:
        await self._client.close()

    # ── Commands ──────────────────────────────────────────────────────

    async def assign_court_with_players(
        self,
        court_id: str,
        players: Sequence[Player],
        group_type: GroupType,
        geolocation: Geolocation | None = None,
    ) -> CommandResult:
        payload = _with_location(
            {
                "court_id": court_id,
                "session_type": group_type,
                "participants": [_participant_payload(p) for p in players],
            },
            geolocation,
        )
        result = _command_result(await self._client.assign_court(payload))
        logger.info("assign-court %s -> ok=%s code=%s", court_id, result.ok, result.code)
        return result

    async def assign_from_waitlist(
        self,
        waitlist_entry_id: str,
        court_id: str,
        geolocation: Geolocation | None = None,
    ) -> CommandResult:
        payload = _with_location(
            {"waitlist_id": waitlist_entry_id, "court_id": court_id},
            geolocation,
        )
        result = _command_result(await self._client.assign_from_waitlist(payload))
        logger.info(
            "assign-from-waitlist %s -> %s ok=%s code=%s",
            waitlist_entry_id,
            court_id,
            result.ok,
            result.code,
        )
        return result

    async def join_waitlist(
        self,
        players: Sequence[Player],
        group_type: GroupType,
        geolocation: Geolocation | None = None,
    ) -> WaitlistJoinResult:
        payload = _with_location(
            {
                "group_type": group_type,
                "participants": [_participant_payload(p) for p in players],
            },
            geolocation,
        )
        raw = await self._client.join_waitlist(payload)
        entry_id = raw.waitlist.id if raw.waitlist else None
        position = raw.position if raw.position is not None else (
            raw.waitlist.position if raw.waitlist else None
        )
        return WaitlistJoinResult(
            ok=raw.ok,
            code=raw.code,
            message=raw.message or raw.error,
            entry_id=entry_id,
            position=position,
        )

    # ── Queries ───────────────────────────────────────────────────────

    async def get_board(self) -> BoardSnapshot:
        raw = await self._client.get_board()
        try:
            return _board(raw)
        except ValidationError as exc:
            raise BackendError("get-board returned an inconsistent board") from exc

    # ── Admin ─────────────────────────────────────────────────────────

    async def mark_wet_courts(
        self,
        device_id: str,
        duration_minutes: int,
        reason: str,
        idempotency_key: str,
        court_ids: Sequence[str] | None = None,
    ) -> WetCourtsResult:
        payload = {
            "device_id": device_id,
            "duration_minutes": duration_minutes,
            "court_ids": list(court_ids) if court_ids is not None else None,
            "reason": reason,
            "idempotency_key": idempotency_key,
        }
        return _wet_result(await self._client.mark_wet_courts(payload))

    async def clear_wet_courts(
        self,
        device_id: str,
        court_ids: Sequence[str] | None = None,
    ) -> WetCourtsResult:
        payload = {
            "device_id": device_id,
            "court_ids": list(court_ids) if court_ids is not None else None,
        }
        return _wet_result(await self._client.clear_wet_courts(payload))
