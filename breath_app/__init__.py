"""
Breath App - Breathwork Session Engine

Drives timed, multi-round breath-work sessions (Wim Hof style): breathing
cycles, breath holds and recovery sequences advanced through a declarative
phase graph, with continuous lung-volume animation values derived from
elapsed time.
"""

__version__ = "0.1.0"
__author__ = "Breath App Team"
