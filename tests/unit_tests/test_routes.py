"""Tests for the board, assignment, waitlist and wet-court endpoints."""

import asyncio
from datetime import datetime

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from courtboard.dependencies import get_now
from courtboard.main import app
from courtboard.models import CommandResult, WetCourtsResult
from courtboard.services.backend import BackendError
from tests.mocks.models import (
    ALICE,
    BOB,
    CLOSING_TIME,
    NOW,
    make_block,
    make_board,
    make_entry,
    make_session,
)


def _json(*players):
    return [p.model_dump(mode="json") for p in players]


def _at(value: str) -> datetime:
    return datetime.fromisoformat(value)


# ── Board views ─────────────────────────────────────────────────────────────


class TestTimeline:
    def test_idle_board(self, client):
        resp = client.get("/api/board/timeline")
        assert resp.status_code == 200

        data = resp.json()
        assert _at(data["now"]) == NOW
        assert _at(data["closing_time"]) == CLOSING_TIME
        assert [e["court_number"] for e in data["timeline"]] == list(range(1, 13))
        assert all(_at(e["available_at"]) == NOW for e in data["timeline"])

    def test_blocks_and_sessions(self, client, test_registry):
        test_registry.board.apply(
            make_board(
                3,
                sessions={1: make_session(30), 2: make_session(30, is_tournament=True)},
                blocks=[make_block(3, 10, 60)],
            )
        )
        timeline = client.get("/api/board/timeline").json()["timeline"]
        assert [(e["court_number"], _at(e["available_at"])) for e in timeline] == [
            (1, _at("2026-06-10T14:30:00+00:00")),
            (3, _at("2026-06-10T15:00:00+00:00")),
        ]

    def test_board_not_loaded(self, _test_env, fake_backend):
        fake_backend.board_error = BackendError("backend down")

        with TestClient(app) as tc:
            resp = tc.get("/api/board/timeline")

        assert resp.status_code == 503
        assert resp.json()["detail"] == "Board not loaded yet. Please retry shortly."


class TestWaitlistEstimates:
    def test_estimates(self, client, test_registry):
        test_registry.board.apply(
            make_board(
                2,
                sessions={1: make_session(10), 2: make_session(25)},
                waitlist=[make_entry("b", 2), make_entry("a", 1), make_entry("c", 3)],
            )
        )
        data = client.get("/api/board/waitlist-estimates").json()
        assert [(e["entry_id"], e["court_number"], e["estimated_minutes"]) for e in data["estimates"]] == [
            ("a", 1, 10),
            ("b", 2, 25),
            ("c", 1, 85),
        ]

    def test_custom_average_game(self, client, test_registry):
        test_registry.board.apply(
            make_board(1, waitlist=[make_entry("a", 1), make_entry("b", 2)])
        )
        data = client.get("/api/board/waitlist-estimates", params={"avg_game_minutes": 60}).json()
        assert [e["estimated_minutes"] for e in data["estimates"]] == [0, 60]

    def test_invalid_average_game(self, client):
        resp = client.get("/api/board/waitlist-estimates", params={"avg_game_minutes": 0})
        assert resp.status_code == 422


class TestRefreshSignal:
    def test_signal_schedules_refresh(self, client):
        resp = client.post("/api/board/refresh-signal")
        assert resp.status_code == 202
        assert resp.json() == {"scheduled": True}


class TestSelectableCourts:
    def test_free_courts(self, client, test_registry):
        test_registry.board.apply(make_board(3, sessions={2: make_session(30)}))
        data = client.get("/api/board/selectable-courts").json()
        assert data["selectable"] == [1, 3]
        assert data["showing_overtime"] is False
        assert data["info"]["occupied"] == [2]

    def test_overtime_fallback(self, client, test_registry):
        test_registry.board.apply(
            make_board(2, sessions={1: make_session(30), 2: make_session(-5)})
        )
        data = client.get("/api/board/selectable-courts").json()
        assert data["selectable"] == [2]
        assert data["showing_overtime"] is True


# ── Commands ────────────────────────────────────────────────────────────────


class TestAssignments:
    def test_assign_court(self, client, fake_backend):
        resp = client.post("/api/assignments", json={"court_number": 5, "players": _json(ALICE, BOB)})
        assert resp.status_code == 200

        data = resp.json()
        assert data["outcome"]["ok"] is True
        assert data["outcome"]["court_number"] == 5
        assert data["outcome"]["session_id"] == "session-new"
        assert data["outcome"]["can_change_court"] is True
        assert data["notices"] == []

        [call] = fake_backend.calls_to("assign_court_with_players")
        assert call["court_id"] == "court-5"
        assert [p.id for p in call["players"]] == ["m-1", "m-2"]

    def test_only_court_cannot_be_changed(self, client):
        body = {"court_number": 5, "players": _json(ALICE), "selectable_count_at_selection": 1}
        data = client.post("/api/assignments", json=body).json()
        assert data["outcome"]["can_change_court"] is False

    def test_guard_failure_is_reported_as_notice(self, client, fake_backend):
        data = client.post("/api/assignments", json={"court_number": 13, "players": _json(ALICE)}).json()

        assert data["outcome"]["ok"] is False
        assert data["outcome"]["code"] == "INVALID_COURT"
        assert data["notices"] == [
            {
                "kind": "alert",
                "message": "Invalid court number. Please select a court between 1 and 12.",
                "level": None,
            }
        ]
        assert fake_backend.calls == []

    def test_block_conflict_needs_confirmation(self, client, test_registry):
        test_registry.board.apply(make_board(blocks=[make_block(5, 20, 80)]))
        body = {"court_number": 5, "players": _json(ALICE)}

        declined = client.post("/api/assignments", json=body).json()
        assert declined["outcome"]["code"] == "BLOCK_CONFLICT_DECLINED"
        assert [n["kind"] for n in declined["notices"]] == ["confirm", "alert"]

        accepted = client.post("/api/assignments", json={**body, "confirm_block_conflict": True}).json()
        assert accepted["outcome"]["ok"] is True

    def test_court_occupied(self, client, fake_backend):
        fake_backend.assign_result = CommandResult(ok=False, code="COURT_OCCUPIED")
        data = client.post("/api/assignments", json={"court_number": 5, "players": _json(ALICE)}).json()

        assert data["outcome"]["code"] == "COURT_OCCUPIED"
        assert data["notices"][0]["message"] == "This court was just taken. Refreshing..."

    def test_assign_from_waitlist(self, client, fake_backend):
        body = {"court_number": 4, "players": _json(ALICE, BOB), "waitlist_entry_id": "wl-1"}
        data = client.post("/api/assignments", json=body).json()

        assert data["outcome"]["ok"] is True
        assert data["outcome"]["from_waitlist"] is True
        assert fake_backend.calls_to("assign_from_waitlist")[0]["waitlist_entry_id"] == "wl-1"

    def test_backend_error(self, client, fake_backend):
        fake_backend.error = BackendError("Backend unavailable")
        data = client.post("/api/assignments", json={"court_number": 5, "players": _json(ALICE)}).json()
        assert data["outcome"]["code"] == "BACKEND_ERROR"
        assert data["notices"][0]["level"] == "error"


class TestWaitlistJoin:
    def test_join(self, client, fake_backend):
        data = client.post("/api/waitlist", json={"players": _json(ALICE, BOB)}).json()

        assert data["outcome"]["ok"] is True
        assert data["outcome"]["entry_id"] == "wl-new"
        assert data["notices"][0]["message"] == "Added to waiting list (position 1)"
        assert fake_backend.calls_to("join_waitlist")[0]["group_type"] == "singles"

    def test_empty_group(self, client, fake_backend):
        data = client.post("/api/waitlist", json={"players": []}).json()
        assert data["outcome"]["code"] == "NO_PLAYERS"
        assert fake_backend.calls == []


class TestConcurrentCommands:
    """Two submissions racing through the ASGI app share one set of in-flight commands."""

    @pytest_asyncio.fixture()
    async def async_client(self, test_registry, fake_backend):
        await test_registry.board.refresh()
        fake_backend.delay = 0.05
        app.dependency_overrides[get_now] = lambda: NOW
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://kiosk.test") as ac:
            yield ac
        app.dependency_overrides.clear()

    @pytest.mark.asyncio
    async def test_double_submit_assigns_once(self, async_client, fake_backend):
        body = {"court_number": 5, "players": _json(ALICE, BOB)}
        responses = await asyncio.gather(
            async_client.post("/api/assignments", json=body),
            async_client.post("/api/assignments", json=body),
        )

        assert [r.status_code for r in responses] == [200, 200]
        codes = sorted(str(r.json()["outcome"]["code"]) for r in responses)
        assert codes == ["ALREADY_ASSIGNING", "None"]
        assert len(fake_backend.calls_to("assign_court_with_players")) == 1

    @pytest.mark.asyncio
    async def test_double_submit_joins_waitlist_once(self, async_client, fake_backend):
        body = {"players": _json(ALICE, BOB)}
        responses = await asyncio.gather(
            async_client.post("/api/waitlist", json=body),
            async_client.post("/api/waitlist", json=body),
        )

        assert sorted(r.json()["outcome"]["ok"] for r in responses) == [False, True]
        assert len(fake_backend.calls_to("join_waitlist")) == 1


# ── Wet courts ──────────────────────────────────────────────────────────────


class TestWetCourts:
    def test_initial_state(self, client):
        data = client.get("/api/wet-courts").json()
        assert data["is_active"] is False
        assert data["wet_count"] == 0
        assert data["is_empty"] is True

    def test_activate_parks_courts_until_closing(self, client):
        data = client.post("/api/wet-courts/activate").json()
        assert data["is_active"] is True
        assert data["wet_count"] == 12

        timeline = client.get("/api/board/timeline").json()["timeline"]
        assert all(_at(e["available_at"]) == CLOSING_TIME for e in timeline)

        selectable = client.get("/api/board/selectable-courts").json()
        assert selectable["selectable"] == []
        assert len(selectable["info"]["wet"]) == 12

    def test_clear_one_court(self, client):
        client.post("/api/wet-courts/activate")
        data = client.post("/api/wet-courts/3/clear").json()
        assert 3 not in data["wet_court_numbers"]
        assert data["wet_count"] == 11

    def test_clear_unknown_court(self, client):
        client.post("/api/wet-courts/activate")
        resp = client.post("/api/wet-courts/99/clear")
        assert resp.status_code == 404

    def test_clear_all_then_deactivate(self, client):
        client.post("/api/wet-courts/activate")
        cleared = client.post("/api/wet-courts/clear-all").json()
        assert cleared["is_active"] is True
        assert cleared["wet_court_numbers"] == []

        deactivated = client.post("/api/wet-courts/deactivate").json()
        assert deactivated["is_active"] is False

    def test_backend_failure_is_reported_in_state(self, client, fake_backend):
        fake_backend.mark_result = WetCourtsResult(ok=False, message="Device not authorized")
        resp = client.post("/api/wet-courts/activate")

        assert resp.status_code == 200
        assert resp.json()["error"] == "Device not authorized"
        assert resp.json()["is_active"] is False
