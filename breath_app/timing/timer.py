"""
Phase timer: a phase-agnostic real-time clock.

The timer runs one phase duration at a time, reports fractional progress on
every tick and signals completion once the elapsed time reaches the duration.
It never blocks: ticks are registrations on a cooperative scheduler (by
default the running asyncio event loop), and elapsed time is read from a
monotonic clock. Pause and resume shift the recorded start timestamp, so no
elapsed time is lost or gained.
"""

import asyncio
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional

from ..errors import BreathingError, TimerSyncError
from ..logging.config import get_timer_logger
from ..utils.time import Clock, elapsed_seconds, monotonic_now

timer_logger = get_timer_logger(__name__)

TickCallback = Callable[[float], None]
CompleteCallback = Callable[[], None]
ErrorCallback = Callable[[BreathingError], None]


class TimerState(str, Enum):
    """Timer lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class PhaseTimer:
    """
    Repeating phase-duration clock, reused across a whole session.

    The scheduler is any object with ``call_later(delay, callback)`` returning
    a handle with ``cancel()``; ``asyncio`` event loops qualify.
    """

    def __init__(
        self,
        on_tick: Optional[TickCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Any] = None,
        tick_interval: float = 1 / 60,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {tick_interval}")

        self.logger = timer_logger
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._on_error = on_error
        self._clock = clock or monotonic_now
        self._scheduler = scheduler
        self.tick_interval = tick_interval

        self._state = TimerState.IDLE
        self._run_id = 0
        self._duration = 0.0
        self._start_time = 0.0
        self._pause_time: Optional[float] = None
        self._last_progress = 0.0
        self._handle: Any = None
        self._active_scheduler: Any = None

    def set_callbacks(
        self,
        on_tick: Optional[TickCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Replace the callbacks that are given; the others are kept."""
        if on_tick is not None:
            self._on_tick = on_tick
        if on_complete is not None:
            self._on_complete = on_complete
        if on_error is not None:
            self._on_error = on_error

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == TimerState.RUNNING

    @property
    def is_paused(self) -> bool:
        return self._state == TimerState.PAUSED

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def progress(self) -> float:
        """Progress of the current run; frozen while paused, 0 when idle."""
        if self._state == TimerState.RUNNING:
            return self._progress_at(self._clock())
        if self._state == TimerState.PAUSED and self._pause_time is not None:
            return self._progress_at(self._pause_time)
        return 0.0

    def start(self, duration: float) -> None:
        """
        Start timing a phase of `duration` seconds and deliver the first tick.

        Raises:
            TimerSyncError: if a run is already armed, the duration is not
                positive, or there is neither a scheduler nor a running loop
        """
        if self._state != TimerState.IDLE:
            raise TimerSyncError(
                "Timer is already running",
                timer_state=self._state.value,
                context={"requested_duration": duration, "current_duration": self._duration}
            )

        if not duration > 0:
            raise TimerSyncError(
                f"Timer duration must be positive, got {duration}",
                timer_state=self._state.value,
                context={"requested_duration": duration}
            )

        self._active_scheduler = self._resolve_scheduler()
        self._run_id += 1
        self._duration = float(duration)
        self._start_time = self._clock()
        self._pause_time = None
        self._last_progress = 0.0
        self._state = TimerState.RUNNING

        self.logger.debug("Timer started", run_id=self._run_id, duration=self._duration)
        self._tick(self._run_id)

    def pause(self) -> None:
        """Halt ticking without losing elapsed time. No-op unless running."""
        if self._state != TimerState.RUNNING:
            return

        self._pause_time = self._clock()
        self._cancel_pending()
        self._state = TimerState.PAUSED

        self.logger.debug("Timer paused", run_id=self._run_id,
                          progress=self._progress_at(self._pause_time))

    def resume(self) -> None:
        """Continue a paused run from where it stopped. No-op unless paused."""
        if self._state != TimerState.PAUSED or self._pause_time is None:
            return

        paused_for = elapsed_seconds(self._pause_time, self._clock())
        self._start_time += paused_for
        self._pause_time = None
        self._state = TimerState.RUNNING

        self.logger.debug("Timer resumed", run_id=self._run_id, paused_for=paused_for)
        self._tick(self._run_id)

    def stop(self) -> None:
        """Halt ticking and return to idle. Always safe; never fires completion."""
        was = self._state
        self._cancel_pending()
        self._state = TimerState.IDLE
        self._pause_time = None

        if was != TimerState.IDLE:
            self.logger.debug("Timer stopped", run_id=self._run_id, previous_state=was.value)

    def _resolve_scheduler(self) -> Any:
        if self._scheduler is not None:
            return self._scheduler
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise TimerSyncError(
                "No scheduler given and no running event loop",
                timer_state=self._state.value
            ) from exc

    def _progress_at(self, now: float) -> float:
        progress = min(elapsed_seconds(self._start_time, now) / self._duration, 1.0)
        return max(progress, self._last_progress)

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule_next(self, run_id: int) -> None:
        self._handle = self._active_scheduler.call_later(
            self.tick_interval, partial(self._tick, run_id)
        )

    def _tick(self, run_id: int) -> None:
        if run_id != self._run_id or self._state != TimerState.RUNNING:
            error = TimerSyncError(
                "Tick received for a run that is no longer active",
                timer_state=self._state.value,
                context={"tick_run_id": run_id, "current_run_id": self._run_id}
            )
            self.logger.warning("Stale timer tick ignored",
                                tick_run_id=run_id, current_run_id=self._run_id)
            self._report(error)
            return

        self._handle = None
        progress = self._progress_at(self._clock())
        self._last_progress = progress

        try:
            if self._on_tick:
                self._on_tick(progress)

            # A callback may have stopped or restarted the timer
            if run_id != self._run_id or self._state != TimerState.RUNNING:
                return

            if progress >= 1.0:
                self._state = TimerState.IDLE
                self.logger.debug("Timer completed", run_id=run_id, duration=self._duration)
                if self._on_complete:
                    self._on_complete()
            else:
                self._schedule_next(run_id)
        except BreathingError as error:
            self._halt(run_id)
            self._report(error)
            raise
        except Exception as exc:
            error = TimerSyncError(
                "Error during timer tick",
                timer_state=self._state.value,
                context={"run_id": run_id, "cause": repr(exc)}
            )
            self._halt(run_id)
            self._report(error)
            raise error from exc

    def _halt(self, run_id: int) -> None:
        if run_id == self._run_id:
            self.stop()

    def _report(self, error: BreathingError) -> None:
        self.logger.error(
            "Timer error",
            error_type=error.error_type.value,
            error=str(error),
            context=error.context
        )
        if self._on_error:
            self._on_error(error)
