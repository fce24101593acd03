"""Tests for session state data models."""

from dataclasses import FrozenInstanceError

import pytest

from breath_app.state.models import (
    AnimationInfo, BreathingState, MainPhase, PhaseInfo, PhasePair, SessionInfo,
    StateDelta, StateSnapshot, SubPhase, TimingInfo
)


@pytest.fixture
def state():
    return BreathingState(
        session=SessionInfo(is_active=True, current_round=1, total_rounds=3),
        phase=PhaseInfo(main=MainPhase.BREATHING, sub=SubPhase.INHALE, max_breaths=30),
        timing=TimingInfo(inhale_time=2.0, exhale_time=2.0, hold_time=30.0,
                          recovery_hold_time=15.0),
    )


class TestPhasePair:
    """Test the (main, sub) pair type."""

    def test_string_form(self):
        assert str(PhasePair(MainPhase.RECOVER, SubPhase.LET_GO)) == "recover/let_go"

    def test_pairs_compare_by_value(self):
        assert PhasePair(MainPhase.HOLD, SubPhase.HOLD) == (MainPhase.HOLD, SubPhase.HOLD)

    def test_phase_info_pair(self):
        info = PhaseInfo(main=MainPhase.RECOVER, sub=SubPhase.HOLD)
        assert info.pair == PhasePair(MainPhase.RECOVER, SubPhase.HOLD)


class TestBreathingState:
    """Test immutable state replacement helpers."""

    def test_defaults(self, state):
        assert state.session.is_paused is False
        assert state.phase.breath_count == 0
        assert state.phase.is_recovery is False
        assert state.animation == AnimationInfo(lung_volume=0.0, progress=0.0)

    def test_state_is_frozen(self, state):
        with pytest.raises(FrozenInstanceError):
            state.session = SessionInfo()

        with pytest.raises(FrozenInstanceError):
            state.phase.breath_count = 3

    def test_with_helpers_return_new_state(self, state):
        paused = state.with_session(is_paused=True)
        counted = state.with_phase(breath_count=4)
        faster = state.with_timing(inhale_time=1.0)
        full = state.with_animation(lung_volume=100.0)

        assert paused.session.is_paused is True
        assert counted.phase.breath_count == 4
        assert faster.timing.inhale_time == 1.0
        assert faster.timing.exhale_time == 2.0
        assert full.animation.lung_volume == 100.0

        # Original untouched
        assert state.session.is_paused is False
        assert state.phase.breath_count == 0

    def test_merge_replaces_supplied_records_only(self, state):
        delta = StateDelta(
            phase=PhaseInfo(main=MainPhase.BREATHING, sub=SubPhase.EXHALE, max_breaths=30),
            animation=AnimationInfo(lung_volume=100.0),
        )

        merged = state.merge(delta)

        assert merged.pair == PhasePair(MainPhase.BREATHING, SubPhase.EXHALE)
        assert merged.animation.lung_volume == 100.0
        assert merged.session is state.session
        assert merged.timing is state.timing

    def test_merge_empty_delta_is_equal(self, state):
        assert state.merge(StateDelta()) == state


class TestStateDelta:
    """Test partial update records."""

    def test_empty(self):
        assert StateDelta().is_empty

    def test_not_empty(self):
        assert not StateDelta(session=SessionInfo()).is_empty


class TestStateSnapshot:
    """Test history records."""

    def test_snapshot_defaults(self, state):
        snapshot = StateSnapshot(timestamp=1.0, state=state)
        assert snapshot.action is None
        assert snapshot.error is None
