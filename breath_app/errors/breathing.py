"""
Breathing session error classifications.

These exceptions represent logic defects in phase sequencing, state
invariants, timer synchronisation or animation computation. They are not
recoverable runtime conditions.
"""

from enum import Enum
from typing import Any, Dict, Optional


class BreathingErrorType(str, Enum):
    """Error kinds surfaced on the error channel."""
    INVALID_PHASE_TRANSITION = "INVALID_PHASE_TRANSITION"
    INVALID_STATE = "INVALID_STATE"
    TIMER_SYNC_ERROR = "TIMER_SYNC_ERROR"
    ANIMATION_ERROR = "ANIMATION_ERROR"


class BreathingError(Exception):
    """Base class for all breathing session errors."""

    error_type = BreathingErrorType.INVALID_STATE

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class InvalidPhaseTransition(BreathingError):
    """Proposed phase disagrees with the protocol, or no transition is defined."""

    error_type = BreathingErrorType.INVALID_PHASE_TRANSITION

    def __init__(self, message: str, current_phase: Optional[str] = None,
                 attempted_phase: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_phase = current_phase
        self.attempted_phase = attempted_phase


class InvalidState(BreathingError):
    """A state invariant is violated."""

    error_type = BreathingErrorType.INVALID_STATE

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field


class TimerSyncError(BreathingError):
    """Timer started while armed, or a tick arrived for a run that no longer exists."""

    error_type = BreathingErrorType.TIMER_SYNC_ERROR

    def __init__(self, message: str, timer_state: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.timer_state = timer_state


class AnimationError(BreathingError):
    """Lung volume or progress computation fault."""

    error_type = BreathingErrorType.ANIMATION_ERROR

    def __init__(self, message: str, progress: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.progress = progress
