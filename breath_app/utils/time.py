"""
Clock utilities for monotonic phase timing and wall-clock snapshots.
"""

import time
from typing import Callable, Optional

Clock = Callable[[], float]


def monotonic_now() -> float:
    """Current monotonic time in seconds, used for all elapsed-time accounting."""
    return time.monotonic()


def wall_clock_now() -> float:
    """Current wall-clock time as a POSIX timestamp, used for history records."""
    return time.time()


def elapsed_seconds(start_time: float, end_time: Optional[float] = None,
                    clock: Clock = monotonic_now) -> float:
    """
    Calculate elapsed time in seconds between two monotonic readings.

    Args:
        start_time: Start reading
        end_time: End reading, defaults to the current reading of ``clock``
        clock: Clock used when ``end_time`` is omitted

    Returns:
        Elapsed seconds, never negative
    """
    if end_time is None:
        end_time = clock()

    return max(end_time - start_time, 0.0)