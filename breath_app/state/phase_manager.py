"""
Phase manager: the sub-phase advance and lung-volume interpolation algorithms.

Both operations are pure functions of the state they are given. The manager
never mutates or stores session state; it returns deltas that the session
store validates and commits.
"""

from dataclasses import replace
from typing import Callable, Optional

from ..errors import AnimationError, BreathingError
from ..logging.config import get_state_logger
from ..protocols.base import MAINTAIN, PhaseTransition, ProtocolDefinition
from .models import AnimationInfo, BreathingState, PhasePair, StateDelta, SubPhase

state_logger = get_state_logger(__name__)


class PhaseManager:
    """Computes discrete phase advances and continuous lung volume for a protocol."""

    def __init__(self, protocol: ProtocolDefinition,
                 on_error: Optional[Callable[[BreathingError], None]] = None):
        self.protocol = protocol
        self.on_error = on_error
        self.logger = state_logger

    def advance(self, state: BreathingState) -> StateDelta:
        """
        Compute the delta that moves `state` to its next sub-phase.

        Args:
            state: Current canonical state, with the finished phase's progress

        Returns:
            StateDelta with the changed records; empty in the terminal phase

        Raises:
            InvalidPhaseTransition: if the protocol has no transition for the phase
        """
        try:
            if self.protocol.is_terminal(state.pair):
                return StateDelta()

            transition = self.protocol.transition_for(state.pair)
            counted, next_pair = self.protocol.resolve_next(state)

            if transition.ends_round:
                candidate = self._roll_over(state, next_pair)
            else:
                candidate = self._step(counted, next_pair, transition)

            self.logger.debug(
                "Computed phase advance",
                from_phase=str(state.pair),
                to_phase=str(candidate.pair),
                breath_count=candidate.phase.breath_count,
                current_round=candidate.session.current_round
            )
            return _diff(state, candidate)
        except BreathingError as error:
            if self.on_error:
                self.on_error(error)
            raise

    def volume_at(self, state: BreathingState, progress: float) -> float:
        """
        Lung volume for the state's current sub-phase at `progress`.

        Hold phases (target MAINTAIN) keep the current volume; all others
        interpolate linearly from empty (inhale) or full (otherwise) to the
        transition's target.
        """
        if not 0.0 <= progress <= 1.0:
            error = AnimationError(
                f"Progress {progress} outside 0..1",
                progress=progress,
                context={"phase": str(state.pair)}
            )
            if self.on_error:
                self.on_error(error)
            raise error

        if self.protocol.is_terminal(state.pair):
            return 0.0

        try:
            transition = self.protocol.transition_for(state.pair)
        except BreathingError as error:
            if self.on_error:
                self.on_error(error)
            raise

        if transition.target_volume == MAINTAIN:
            return state.animation.lung_volume

        start = 0.0 if state.phase.sub == SubPhase.INHALE else 100.0
        end = float(transition.target_volume)
        return start + (end - start) * progress

    def _step(self, counted: BreathingState, next_pair: PhasePair,
              transition: PhaseTransition) -> BreathingState:
        """Move within the round: same main phase, or across a main-phase boundary."""
        candidate = counted.merge(StateDelta(
            phase=replace(counted.phase, main=next_pair.main, sub=next_pair.sub),
            animation=replace(counted.animation, progress=0.0),
        ))

        if next_pair.main != counted.phase.main:
            candidate = candidate.with_phase(
                breath_count=0,
                is_recovery=next_pair.main in self.protocol.recovery_phases,
            )
            candidate = self.protocol.enter(next_pair.main, candidate)

        if transition.target_volume != MAINTAIN:
            candidate = candidate.with_animation(lung_volume=float(transition.target_volume))

        return candidate

    def _roll_over(self, state: BreathingState, next_pair: PhasePair) -> BreathingState:
        """End the round: complete the session or start the next round."""
        phase = replace(
            state.phase,
            main=next_pair.main,
            sub=next_pair.sub,
            is_recovery=False,
            breath_count=0,
        )

        if self.protocol.is_terminal(next_pair):
            session = replace(state.session, is_active=False, is_paused=False)
        else:
            session = replace(
                state.session,
                current_round=state.session.current_round + 1,
                is_paused=False,
            )

        # Timing is left alone; the store recomputes the new round's hold time.
        return state.merge(StateDelta(
            session=session,
            phase=phase,
            animation=AnimationInfo(lung_volume=0.0, progress=0.0),
        ))


def _diff(state: BreathingState, candidate: BreathingState) -> StateDelta:
    return StateDelta(
        session=candidate.session if candidate.session != state.session else None,
        phase=candidate.phase if candidate.phase != state.phase else None,
        timing=candidate.timing if candidate.timing != state.timing else None,
        animation=candidate.animation if candidate.animation != state.animation else None,
    )
