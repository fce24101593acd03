"""
Session state data models.

This module defines immutable data structures for the canonical breathing
session state and the partial updates (deltas) produced by the phase manager.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import NamedTuple, Optional


class MainPhase(str, Enum):
    """Coarse session stage."""
    BREATHING = "breathing"
    HOLD = "hold"
    RECOVER = "recover"
    COMPLETE = "complete"


class SubPhase(str, Enum):
    """Fine-grained step within a main phase."""
    INHALE = "inhale"
    EXHALE = "exhale"
    HOLD = "hold"
    LET_GO = "let_go"


class PhasePair(NamedTuple):
    """A (main, sub) position in the phase graph."""
    main: MainPhase
    sub: SubPhase

    def __str__(self) -> str:
        return f"{self.main.value}/{self.sub.value}"


@dataclass(frozen=True)
class SessionInfo:
    """Session-level flags and round counters. Rounds are 1-indexed."""
    is_active: bool = False
    is_paused: bool = False
    current_round: int = 1
    total_rounds: int = 1


@dataclass(frozen=True)
class PhaseInfo:
    """Discrete phase position and breath counting for the current round."""
    main: MainPhase = MainPhase.BREATHING
    sub: SubPhase = SubPhase.INHALE
    is_recovery: bool = False
    breath_count: int = 0                            # Completed cycles this round
    max_breaths: int = 1

    @property
    def pair(self) -> PhasePair:
        return PhasePair(self.main, self.sub)


@dataclass(frozen=True)
class TimingInfo:
    """Sub-phase durations in seconds."""
    inhale_time: float
    exhale_time: float
    hold_time: float                                 # Derived per round
    recovery_hold_time: float


@dataclass(frozen=True)
class AnimationInfo:
    """Continuous per-tick values."""
    lung_volume: float = 0.0                         # 0..100
    progress: float = 0.0                            # 0..1


@dataclass(frozen=True)
class StateDelta:
    """Partial replacement of a BreathingState; None keeps the current record."""
    session: Optional[SessionInfo] = None
    phase: Optional[PhaseInfo] = None
    timing: Optional[TimingInfo] = None
    animation: Optional[AnimationInfo] = None

    @property
    def is_empty(self) -> bool:
        return (self.session is None and self.phase is None
                and self.timing is None and self.animation is None)


@dataclass(frozen=True)
class BreathingState:
    """Canonical breathing session state, replaced on every change."""

    session: SessionInfo
    phase: PhaseInfo
    timing: TimingInfo
    animation: AnimationInfo = AnimationInfo()

    @property
    def pair(self) -> PhasePair:
        return self.phase.pair

    def merge(self, delta: StateDelta) -> 'BreathingState':
        """Create new state with the records supplied by the delta."""
        return BreathingState(
            session=delta.session or self.session,
            phase=delta.phase or self.phase,
            timing=delta.timing or self.timing,
            animation=delta.animation or self.animation,
        )

    def with_session(self, **changes) -> 'BreathingState':
        return replace(self, session=replace(self.session, **changes))

    def with_phase(self, **changes) -> 'BreathingState':
        return replace(self, phase=replace(self.phase, **changes))

    def with_timing(self, **changes) -> 'BreathingState':
        return replace(self, timing=replace(self.timing, **changes))

    def with_animation(self, **changes) -> 'BreathingState':
        return replace(self, animation=replace(self.animation, **changes))


@dataclass(frozen=True)
class StateSnapshot:
    """History record of a committed state or a rejected command."""
    timestamp: float
    state: BreathingState
    action: Optional[str] = None
    error: Optional[Exception] = None
