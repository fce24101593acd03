"""
Real-time timing engine.

A single PhaseTimer drives the whole session, ticking once per display
refresh on a cooperative scheduler.
"""

from .timer import PhaseTimer, TimerState

__all__ = ["PhaseTimer", "TimerState"]
