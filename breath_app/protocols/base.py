"""
Declarative protocol definition for breathing methods.

A protocol maps every (main, sub) phase pair to a PhaseTransition describing
where the session goes next, which lung volume the phase ends at, how long it
lasts and how it is labelled. Alternative breathing methods are substituted
by supplying a different ProtocolDefinition; nothing else changes.
"""

from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Union

from ..config.defaults import BreathingSettings
from ..errors import InvalidPhaseTransition
from ..state.models import (
    AnimationInfo,
    BreathingState,
    MainPhase,
    PhaseInfo,
    PhasePair,
    SessionInfo,
    SubPhase,
    TimingInfo,
)

# Target volume sentinel: the phase keeps whatever lung volume it started with.
MAINTAIN = "maintain"

NextPhase = Callable[[BreathingState], PhasePair]
HoldProgression = Callable[[int, int, float], float]
EntryFunction = Callable[[BreathingState], BreathingState]


def goto(main: MainPhase, sub: SubPhase) -> NextPhase:
    """Build a next-phase function that always yields the same pair."""
    pair = PhasePair(main, sub)

    def _next(state: BreathingState) -> PhasePair:
        return pair

    return _next


@dataclass(frozen=True)
class PhaseTransition:
    """Transition and animation rules for a single (main, sub) pair."""

    next: NextPhase
    target_volume: Union[float, str]                 # 0..100 or MAINTAIN
    duration: Callable[[BreathingState], float]
    label: str

    # Completing this phase counts one breath before `next` is evaluated
    counts_breath: bool = False
    # Completing this phase ends the round (rollover or session completion)
    ends_round: bool = False


@dataclass(frozen=True, eq=False)
class ProtocolDefinition:
    """Immutable phase graph and hold progression rule for a breathing method."""

    id: str
    name: str
    description: str
    default_settings: BreathingSettings
    sub_phases: Mapping[MainPhase, tuple]
    transitions: Mapping[PhasePair, PhaseTransition]
    hold_progression: HoldProgression
    on_enter: Mapping[MainPhase, EntryFunction] = field(default_factory=dict)
    initial_phase: PhasePair = PhasePair(MainPhase.BREATHING, SubPhase.INHALE)
    terminal_phase: PhasePair = PhasePair(MainPhase.COMPLETE, SubPhase.INHALE)
    recovery_phases: frozenset = frozenset()
    terminal_label: str = "Complete"

    def __post_init__(self) -> None:
        self.check_total()

    def check_total(self) -> None:
        """Ensure every non-terminal pair has a transition and every transition a valid pair."""
        if not self.is_valid_pair(self.initial_phase):
            raise InvalidPhaseTransition(
                f"Initial phase {self.initial_phase} is not a valid pair",
                attempted_phase=str(self.initial_phase)
            )

        if not self.is_valid_pair(self.terminal_phase):
            raise InvalidPhaseTransition(
                f"Terminal phase {self.terminal_phase} is not a valid pair",
                attempted_phase=str(self.terminal_phase)
            )

        for main, subs in self.sub_phases.items():
            if main == self.terminal_phase.main:
                continue
            for sub in subs:
                pair = PhasePair(main, sub)
                if pair not in self.transitions:
                    raise InvalidPhaseTransition(
                        f"No transition defined for phase {pair}",
                        current_phase=str(pair),
                        context={"protocol": self.id}
                    )

        for pair in self.transitions:
            if not self.is_valid_pair(pair):
                raise InvalidPhaseTransition(
                    f"Transition defined for unknown phase {pair}",
                    current_phase=str(pair),
                    context={"protocol": self.id}
                )

    def is_valid_pair(self, pair: PhasePair) -> bool:
        return pair.sub in self.sub_phases.get(pair.main, ())

    def is_terminal(self, pair: PhasePair) -> bool:
        return pair.main == self.terminal_phase.main

    def transition_for(self, pair: PhasePair) -> PhaseTransition:
        """Look up the transition for a pair, raising if the graph has none."""
        transition = self.transitions.get(pair)
        if transition is None:
            raise InvalidPhaseTransition(
                f"No transition defined for phase {pair}",
                current_phase=str(pair),
                context={"protocol": self.id}
            )
        return transition

    def hold_duration_for_round(self, round_number: int, total_rounds: int,
                                target: float) -> float:
        return self.hold_progression(round_number, total_rounds, target)

    def resolve_next(self, state: BreathingState) -> tuple[BreathingState, PhasePair]:
        """
        Resolve the phase that follows the current one.

        A counting transition increments the breath count before `next` is
        evaluated, so the branch decision sees the post-increment count. A
        round-ending transition in the last round resolves to the terminal
        phase.

        Returns:
            (state with the counted breath applied, next phase pair)
        """
        transition = self.transition_for(state.pair)

        counted = state
        if transition.counts_breath:
            counted = state.with_phase(breath_count=state.phase.breath_count + 1)

        next_pair = transition.next(counted)

        if transition.ends_round and state.session.current_round >= state.session.total_rounds:
            next_pair = self.terminal_phase

        return counted, next_pair

    def enter(self, main: MainPhase, state: BreathingState) -> BreathingState:
        """Apply the entry defaults of a main phase, if the protocol defines any."""
        entry = self.on_enter.get(main)
        if entry is None:
            return state
        return entry(state)

    def duration_for(self, state: BreathingState) -> float:
        """Duration in seconds of the state's current sub-phase (0 when terminal)."""
        if self.is_terminal(state.pair):
            return 0.0
        return float(self.transition_for(state.pair).duration(state))

    def label_for(self, pair: PhasePair) -> str:
        if self.is_terminal(pair):
            return self.terminal_label
        transition = self.transitions.get(pair)
        if transition is None:
            return str(pair)
        return transition.label

    def initial_state(self, settings: Optional[BreathingSettings] = None,
                      recovery_hold_time: float = 15.0,
                      is_active: bool = False) -> BreathingState:
        """Build the round-one starting state for the given settings."""
        settings = settings or self.default_settings
        return BreathingState(
            session=SessionInfo(
                is_active=is_active,
                is_paused=False,
                current_round=1,
                total_rounds=settings.number_of_rounds,
            ),
            phase=PhaseInfo(
                main=self.initial_phase.main,
                sub=self.initial_phase.sub,
                is_recovery=self.initial_phase.main in self.recovery_phases,
                breath_count=0,
                max_breaths=settings.breaths_before_hold,
            ),
            timing=TimingInfo(
                inhale_time=float(settings.inhale_exhale_time),
                exhale_time=float(settings.inhale_exhale_time),
                hold_time=self.hold_duration_for_round(
                    1, settings.number_of_rounds, settings.breath_hold_target
                ),
                recovery_hold_time=float(recovery_hold_time),
            ),
            animation=AnimationInfo(lung_volume=0.0, progress=0.0),
        )
