"""End-to-end session scenarios driven by the fake clock."""

from dataclasses import replace
from unittest.mock import Mock

import pytest

from breath_app.errors import AnimationError, InvalidState
from breath_app.protocols import WIM_HOF_PROTOCOL, ProtocolDefinition
from breath_app.state.models import MainPhase, PhasePair, SubPhase
from breath_app.state.validator import validate_state


def record_phases(store):
    """Record (pair, round, duration) for every phase the store enters."""
    phases = []

    def listener(view):
        key = (view.state.pair, view.state.session.current_round)
        if not phases or phases[-1][:2] != key:
            phases.append((view.state.pair, view.state.session.current_round,
                           store.protocol.duration_for(view.state)))

    store.subscribe(listener)
    return phases


class TestMultiRoundSession:
    """Walk a two-round session from start to completion."""

    def test_phase_sequence_and_durations(self, make_store, scheduler):
        store = make_store()
        phases = record_phases(store)

        store.start_session()
        scheduler.advance(60.0)

        B, H, R = MainPhase.BREATHING, MainPhase.HOLD, MainPhase.RECOVER
        I, E, HO, L = SubPhase.INHALE, SubPhase.EXHALE, SubPhase.HOLD, SubPhase.LET_GO
        round_sequence = [(B, I), (B, E), (H, HO), (R, I), (R, HO), (R, L)]

        entered = [(pair, rnd) for pair, rnd, _ in phases[:-1]]
        expected = [(PhasePair(*p), 1) for p in round_sequence] + \
                   [(PhasePair(*p), 2) for p in round_sequence]
        assert entered == expected

        durations = [duration for _, _, duration in phases[:-1]]
        assert durations == [1.0, 1.0, 3.0, 1.0, 15.0, 1.0,
                             1.0, 1.0, 9.0, 1.0, 15.0, 1.0]

        assert phases[-1][:2] == (PhasePair(MainPhase.COMPLETE, SubPhase.INHALE), 2)

    def test_session_completes(self, make_store, scheduler):
        store = make_store()
        store.start_session()

        scheduler.advance(60.0)

        assert store.state.pair == PhasePair(MainPhase.COMPLETE, SubPhase.INHALE)
        assert store.state.session.is_active is False
        assert store.phase_label == "Complete"
        assert scheduler.pending == []

    def test_completes_at_exact_total_duration(self, make_store, scheduler):
        store = make_store()
        store.start_session()

        scheduler.advance(49.75)
        assert store.state.pair == PhasePair(MainPhase.RECOVER, SubPhase.LET_GO)

        scheduler.advance(0.25)
        assert store.state.pair == PhasePair(MainPhase.COMPLETE, SubPhase.INHALE)

    def test_new_session_after_completion(self, make_store, scheduler):
        store = make_store()
        store.start_session()
        scheduler.advance(60.0)

        state = store.start_session()

        assert state.session.is_active is True
        assert state.session.current_round == 1
        assert store.timer.is_running

    def test_invariants_hold_on_every_view(self, make_store, scheduler):
        store = make_store(breaths_before_hold=2, number_of_rounds=3)
        views = []
        store.subscribe(views.append)

        store.start_session()
        scheduler.advance(3.3)
        store.pause_session()
        scheduler.advance(5.0)
        store.resume_session()
        scheduler.advance(120.0)

        assert store.state.pair == PhasePair(MainPhase.COMPLETE, SubPhase.INHALE)
        for view in views:
            validate_state(view.state, WIM_HOF_PROTOCOL)
            assert 0.0 <= view.lung_volume <= 100.0
            assert 0.0 <= view.progress <= 1.0


class TestSingleRoundSession:
    """A single round holds for the full target and then completes."""

    def test_single_round_rollover_completes(self, make_store, scheduler):
        store = make_store(breaths_before_hold=2, number_of_rounds=1)
        phases = record_phases(store)

        store.start_session()
        scheduler.advance(60.0)

        pairs = [pair for pair, _, _ in phases]
        assert pairs.count(PhasePair(MainPhase.BREATHING, SubPhase.EXHALE)) == 2
        hold = [d for pair, _, d in phases if pair == PhasePair(MainPhase.HOLD, SubPhase.HOLD)]
        assert hold == [9.0]
        assert store.state.pair == PhasePair(MainPhase.COMPLETE, SubPhase.INHALE)
        assert store.state.session.is_active is False
        assert store.state.session.current_round == 1


class TestLungVolumeAnimation:
    """Check lung volume across a breathing cycle and hold."""

    def test_volume_through_cycle(self, make_store, scheduler):
        store = make_store()
        store.start_session()

        scheduler.advance(0.5)
        assert store.state.animation.lung_volume == 50.0

        scheduler.advance(0.75)
        assert store.state.pair == PhasePair(MainPhase.BREATHING, SubPhase.EXHALE)
        assert store.state.animation.lung_volume == 75.0

        # Into the empty-lung hold; volume stays put
        scheduler.advance(2.0)
        assert store.state.pair == PhasePair(MainPhase.HOLD, SubPhase.HOLD)
        assert store.state.animation.lung_volume == 0.0

    def test_recovery_hold_keeps_full_lungs(self, make_store, scheduler):
        store = make_store()
        store.start_session()

        # inhale 1 + exhale 1 + hold 3 + recovery inhale 1 + 5s into the recovery hold
        scheduler.advance(11.0)

        assert store.state.pair == PhasePair(MainPhase.RECOVER, SubPhase.HOLD)
        assert store.state.animation.lung_volume == 100.0
        assert store.phase_label == "Recovery Hold"


class TestErrorReporting:
    """Faults during timer-driven updates are reported, never swallowed."""

    def test_bad_target_volume_reports_and_keeps_state(self, make_store, scheduler):
        overfull = replace(
            WIM_HOF_PROTOCOL.transition_for(PhasePair(MainPhase.BREATHING, SubPhase.INHALE)),
            target_volume=150,
        )
        transitions = dict(WIM_HOF_PROTOCOL.transitions)
        transitions[PhasePair(MainPhase.BREATHING, SubPhase.INHALE)] = overfull
        protocol = replace(WIM_HOF_PROTOCOL, id="overfull", transitions=transitions)
        assert isinstance(protocol, ProtocolDefinition)

        on_error = Mock()
        store = make_store(protocol=protocol, on_error=on_error)
        store.start_session()
        scheduler.advance(0.5)
        committed = store.state

        # 150 * 0.75 overflows the lungs
        scheduler.advance(0.5)

        on_error.assert_called_once()
        error = on_error.call_args[0][0]
        assert isinstance(error, InvalidState)
        assert error.field == "animation.lung_volume"
        assert store.state is committed
        assert store.timer.state.value == "idle"
        assert store.history[-1].error is error
        assert store.history[-1].action == "tick"

    def test_animation_error_reaches_error_channel(self, make_store):
        on_error = Mock()
        store = make_store(on_error=on_error)
        store.start_session()

        store._handle_tick(1.5)

        error = on_error.call_args[0][0]
        assert isinstance(error, AnimationError)
        assert store.state.animation.progress == 0.0
        with pytest.raises(AnimationError):
            store.phase_manager.volume_at(store.state, 1.5)
