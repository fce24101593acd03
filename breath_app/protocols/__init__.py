"""
Breathing protocol definitions.

A protocol is a declarative phase graph plus a hold-duration progression
rule. The phase manager, validator and timer are driven by whichever
protocol the session store is constructed with.
"""

from .base import MAINTAIN, PhaseTransition, ProtocolDefinition, goto
from .wim_hof import WIM_HOF_PROTOCOL, wim_hof_hold_progression

__all__ = [
    "MAINTAIN",
    "PhaseTransition",
    "ProtocolDefinition",
    "goto",
    "WIM_HOF_PROTOCOL",
    "wim_hof_hold_progression",
]
