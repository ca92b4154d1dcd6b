"""Tests for the wet-courts state reducer."""

import pytest
from pydantic import ValidationError

from courtboard.domain.wet_courts import (
    INITIAL_WET_STATE,
    WetActivated,
    WetCourtCleared,
    WetCourtsClearedAll,
    WetDeactivated,
    WetOpFailed,
    WetOpStarted,
    WetOpSucceeded,
    normalize_court_numbers,
    wet_courts_reducer,
)
from tests.mocks.models import make_block


def _active(*numbers):
    return wet_courts_reducer(INITIAL_WET_STATE, WetActivated(tuple(numbers)))


class TestBusyFlags:
    def test_op_started_sets_busy_and_clears_error(self):
        failed = wet_courts_reducer(INITIAL_WET_STATE, WetOpFailed("boom"))
        state = wet_courts_reducer(failed, WetOpStarted("activate"))
        assert state.is_busy is True
        assert state.busy_op == "activate"
        assert state.error is None

    def test_op_succeeded_clears_busy(self):
        busy = wet_courts_reducer(INITIAL_WET_STATE, WetOpStarted("clearOne"))
        state = wet_courts_reducer(busy, WetOpSucceeded())
        assert state.is_busy is False
        assert state.busy_op is None

    def test_op_succeeded_clears_stale_error(self):
        failed = wet_courts_reducer(INITIAL_WET_STATE, WetOpFailed("boom"))
        state = wet_courts_reducer(failed, WetOpSucceeded())
        assert state.error is None

    def test_op_failed_records_error(self):
        busy = wet_courts_reducer(INITIAL_WET_STATE, WetOpStarted("deactivate"))
        state = wet_courts_reducer(busy, WetOpFailed("Backend unavailable"))
        assert state.is_busy is False
        assert state.error == "Backend unavailable"


class TestActivation:
    def test_activate_sorts_and_dedupes(self):
        state = _active(3, 1, 3, 2)
        assert state.is_active is True
        assert state.wet_court_numbers == (1, 2, 3)
        assert state.wet_count == 3
        assert state.is_empty is False

    def test_activate_stores_suspended_blocks(self):
        blocks = (make_block(1, 30, 90), make_block(2, 60, 120))
        state = wet_courts_reducer(INITIAL_WET_STATE, WetActivated((1, 2), blocks))
        assert state.suspended_blocks == blocks

    def test_activate_without_blocks_keeps_existing(self):
        blocks = (make_block(1, 30, 90),)
        state = wet_courts_reducer(INITIAL_WET_STATE, WetActivated((1,), blocks))
        state = wet_courts_reducer(state, WetActivated((1, 2)))
        assert state.suspended_blocks == blocks

    def test_deactivate_resets_everything(self):
        blocks = (make_block(1, 30, 90),)
        state = wet_courts_reducer(INITIAL_WET_STATE, WetActivated((1, 2), blocks))
        state = wet_courts_reducer(state, WetDeactivated())
        assert state.is_active is False
        assert state.wet_court_numbers == ()
        assert state.suspended_blocks == ()
        assert state.is_empty is True


class TestClearing:
    def test_clear_one_court(self):
        state = wet_courts_reducer(_active(1, 2, 3), WetCourtCleared(2))
        assert state.wet_court_numbers == (1, 3)

    def test_clearing_last_court_stays_active(self):
        state = wet_courts_reducer(_active(4), WetCourtCleared(4))
        assert state.is_active is True
        assert state.is_empty is True

    def test_clearing_unknown_court_is_a_no_op(self):
        state = wet_courts_reducer(_active(1, 2), WetCourtCleared(9))
        assert state.wet_court_numbers == (1, 2)

    def test_clear_all_stays_active(self):
        state = wet_courts_reducer(_active(1, 2, 3), WetCourtsClearedAll())
        assert state.is_active is True
        assert state.wet_court_numbers == ()


class TestPurity:
    def test_unknown_action_returns_same_state(self):
        state = _active(1)
        assert wet_courts_reducer(state, object()) is state

    def test_previous_state_is_untouched(self):
        before = _active(1, 2)
        wet_courts_reducer(before, WetCourtCleared(1))
        assert before.wet_court_numbers == (1, 2)

    def test_state_is_frozen(self):
        with pytest.raises(ValidationError):
            INITIAL_WET_STATE.is_active = True

    def test_normalize_court_numbers(self):
        assert normalize_court_numbers([5, 2, 5, 1]) == (1, 2, 5)
