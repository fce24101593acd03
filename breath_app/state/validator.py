"""
State and transition validation.

Pure predicate functions called by the session store before every commit.
They raise typed errors and never modify state.
"""

from typing import TYPE_CHECKING

from ..errors import InvalidPhaseTransition, InvalidState
from .models import BreathingState

if TYPE_CHECKING:
    from ..protocols.base import ProtocolDefinition


def validate_state(state: BreathingState, protocol: "ProtocolDefinition") -> None:
    """
    Check the session invariants.

    Raises:
        InvalidState: naming the first violated invariant
    """
    session = state.session
    phase = state.phase
    timing = state.timing
    animation = state.animation

    if not 0 <= phase.breath_count <= phase.max_breaths:
        raise InvalidState(
            f"Breath count {phase.breath_count} outside 0..{phase.max_breaths}",
            field="phase.breath_count",
            context={"breath_count": phase.breath_count, "max_breaths": phase.max_breaths}
        )

    if not 1 <= session.current_round <= session.total_rounds:
        raise InvalidState(
            f"Current round {session.current_round} outside 1..{session.total_rounds}",
            field="session.current_round",
            context={"current_round": session.current_round,
                     "total_rounds": session.total_rounds}
        )

    for name in ("inhale_time", "exhale_time", "hold_time", "recovery_hold_time"):
        value = getattr(timing, name)
        if not value > 0:
            raise InvalidState(
                f"Timing value {name} must be positive, got {value}",
                field=f"timing.{name}",
                context={name: value}
            )

    if not 0 <= animation.lung_volume <= 100:
        raise InvalidState(
            f"Lung volume {animation.lung_volume} out of bounds",
            field="animation.lung_volume",
            context={"lung_volume": animation.lung_volume}
        )

    if not 0 <= animation.progress <= 1:
        raise InvalidState(
            f"Progress {animation.progress} out of bounds",
            field="animation.progress",
            context={"progress": animation.progress}
        )

    if not protocol.is_valid_pair(state.pair):
        raise InvalidState(
            f"Sub phase {phase.sub.value} is not valid for {phase.main.value}",
            field="phase.sub",
            context={"phase": str(state.pair), "protocol": protocol.id}
        )


def validate_transition(prev: BreathingState, next_state: BreathingState,
                        protocol: "ProtocolDefinition") -> None:
    """
    Check that moving from `prev` to `next_state` is legal under the protocol.

    Raises:
        InvalidPhaseTransition: on an unexpected phase, breath count or round change
    """
    phase_changed = prev.pair != next_state.pair

    if phase_changed:
        if protocol.is_terminal(prev.pair):
            raise InvalidPhaseTransition(
                f"Cannot leave terminal phase {prev.pair}",
                current_phase=str(prev.pair),
                attempted_phase=str(next_state.pair)
            )

        _, expected = protocol.resolve_next(prev)
        if expected != next_state.pair:
            raise InvalidPhaseTransition(
                f"Invalid phase transition from {prev.pair} to {next_state.pair}",
                current_phase=str(prev.pair),
                attempted_phase=str(next_state.pair),
                context={"expected": str(expected)}
            )

    _check_round_change(prev, next_state, protocol, phase_changed)
    _check_breath_count_change(prev, next_state, protocol, phase_changed)


def _check_round_change(prev: BreathingState, next_state: BreathingState,
                        protocol: "ProtocolDefinition", phase_changed: bool) -> None:
    prev_round = prev.session.current_round
    next_round = next_state.session.current_round

    if next_round < prev_round:
        raise InvalidPhaseTransition(
            f"Round decreased from {prev_round} to {next_round}",
            current_phase=str(prev.pair),
            attempted_phase=str(next_state.pair),
            context={"prev_round": prev_round, "next_round": next_round}
        )

    if next_round == prev_round:
        return

    ends_round = phase_changed and protocol.transition_for(prev.pair).ends_round
    if next_round != prev_round + 1 or not ends_round:
        raise InvalidPhaseTransition(
            f"Invalid round transition from {prev_round} to {next_round}",
            current_phase=str(prev.pair),
            attempted_phase=str(next_state.pair),
            context={"prev_round": prev_round, "next_round": next_round}
        )


def _check_breath_count_change(prev: BreathingState, next_state: BreathingState,
                               protocol: "ProtocolDefinition", phase_changed: bool) -> None:
    prev_count = prev.phase.breath_count
    next_count = next_state.phase.breath_count

    new_main = prev.phase.main != next_state.phase.main
    new_round = prev.session.current_round != next_state.session.current_round

    if new_main or new_round:
        if next_count != 0:
            raise InvalidPhaseTransition(
                f"Breath count must reset on entering {next_state.phase.main.value}, got {next_count}",
                current_phase=str(prev.pair),
                attempted_phase=str(next_state.pair),
                context={"prev_count": prev_count, "next_count": next_count}
            )
        return

    if next_count == prev_count:
        return

    counted = phase_changed and protocol.transition_for(prev.pair).counts_breath
    if next_count != prev_count + 1 or not counted:
        raise InvalidPhaseTransition(
            f"Invalid breath count transition from {prev_count} to {next_count}",
            current_phase=str(prev.pair),
            attempted_phase=str(next_state.pair),
            context={"prev_count": prev_count, "next_count": next_count}
        )
