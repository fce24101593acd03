"""
Utility functions module.

Clock helpers shared by the phase timer and the session store.

Time Semantics:
- Phase timing always uses a monotonic clock, immune to wall-clock changes
- Wall-clock time is only used to timestamp history snapshots
"""
