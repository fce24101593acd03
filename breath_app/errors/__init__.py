"""
Typed error hierarchy for the breathing session core.

Every error kind reaches the collaborator-visible error channel; none of them
is expected under a conforming protocol definition and correct command
sequencing.
"""

from .breathing import (
    AnimationError,
    BreathingError,
    BreathingErrorType,
    InvalidPhaseTransition,
    InvalidState,
    TimerSyncError,
)

__all__ = [
    "BreathingErrorType",
    "BreathingError",
    "InvalidPhaseTransition",
    "InvalidState",
    "TimerSyncError",
    "AnimationError",
]
