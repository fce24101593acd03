"""
Wim Hof breathing method.

Each round: `breaths_before_hold` deep inhale/exhale cycles, a retention hold
on empty lungs that lengthens as the session progresses, then a recovery
breath held for a fixed time before letting go.
"""

from ..config.defaults import BreathingSettings
from ..state.models import BreathingState, MainPhase, PhasePair, SubPhase
from .base import MAINTAIN, PhaseTransition, ProtocolDefinition, goto


def wim_hof_hold_progression(round_number: int, total_rounds: int, target: float) -> float:
    """
    Hold duration for a round, in thirds of the target.

    Session progress is measured as (round - 1) / (total - 1): the first third
    of the session holds for target/3, the middle third for 2/3 of the target
    and the final rounds for the full target. A single-round session holds for
    the full target.
    """
    if total_rounds <= 1:
        return float(target)

    # Integer comparisons avoid float error at the exact thirds
    done, span = round_number - 1, total_rounds - 1
    if 3 * done <= span:
        return target / 3
    if 3 * done <= 2 * span:
        return target * 2 / 3
    return float(target)


def _after_exhale(state: BreathingState) -> PhasePair:
    if state.phase.breath_count < state.phase.max_breaths:
        return PhasePair(MainPhase.BREATHING, SubPhase.INHALE)
    return PhasePair(MainPhase.HOLD, SubPhase.HOLD)


def _enter_breathing(state: BreathingState) -> BreathingState:
    return state.with_animation(lung_volume=0.0, progress=0.0)


WIM_HOF_PROTOCOL = ProtocolDefinition(
    id="wim-hof",
    name="Wim Hof Method",
    description="Progressive breath hold technique with deep breathing followed by retention.",
    default_settings=BreathingSettings(
        breaths_before_hold=30,
        inhale_exhale_time=2.0,
        breath_hold_target=90.0,
        number_of_rounds=3,
    ),
    sub_phases={
        MainPhase.BREATHING: (SubPhase.INHALE, SubPhase.EXHALE),
        MainPhase.HOLD: (SubPhase.HOLD,),
        MainPhase.RECOVER: (SubPhase.INHALE, SubPhase.HOLD, SubPhase.LET_GO),
        MainPhase.COMPLETE: (SubPhase.INHALE,),
    },
    transitions={
        PhasePair(MainPhase.BREATHING, SubPhase.INHALE): PhaseTransition(
            next=goto(MainPhase.BREATHING, SubPhase.EXHALE),
            target_volume=100,
            duration=lambda state: state.timing.inhale_time,
            label="Inhale",
        ),
        PhasePair(MainPhase.BREATHING, SubPhase.EXHALE): PhaseTransition(
            next=_after_exhale,
            target_volume=0,
            duration=lambda state: state.timing.exhale_time,
            label="Exhale",
            counts_breath=True,
        ),
        PhasePair(MainPhase.HOLD, SubPhase.HOLD): PhaseTransition(
            next=goto(MainPhase.RECOVER, SubPhase.INHALE),
            target_volume=MAINTAIN,
            duration=lambda state: state.timing.hold_time,
            label="Hold",
        ),
        PhasePair(MainPhase.RECOVER, SubPhase.INHALE): PhaseTransition(
            next=goto(MainPhase.RECOVER, SubPhase.HOLD),
            target_volume=100,
            duration=lambda state: state.timing.inhale_time,
            label="Recovery Inhale",
        ),
        PhasePair(MainPhase.RECOVER, SubPhase.HOLD): PhaseTransition(
            next=goto(MainPhase.RECOVER, SubPhase.LET_GO),
            target_volume=MAINTAIN,
            duration=lambda state: state.timing.recovery_hold_time,
            label="Recovery Hold",
        ),
        PhasePair(MainPhase.RECOVER, SubPhase.LET_GO): PhaseTransition(
            next=goto(MainPhase.BREATHING, SubPhase.INHALE),
            target_volume=0,
            duration=lambda state: state.timing.exhale_time,
            label="Let Go",
            ends_round=True,
        ),
    },
    hold_progression=wim_hof_hold_progression,
    on_enter={
        MainPhase.BREATHING: _enter_breathing,
    },
    recovery_phases=frozenset({MainPhase.HOLD, MainPhase.RECOVER}),
)
