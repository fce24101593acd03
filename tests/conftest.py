"""Pytest configuration and shared fixtures."""

from functools import partial
from typing import Any, Callable, Optional

import pytest

from breath_app.config.defaults import BreathingSettings, SessionParams, TimerParams
from breath_app.protocols import WIM_HOF_PROTOCOL
from breath_app.session.store import SessionStore
from breath_app.state.models import BreathingState

TICK_INTERVAL = 0.25


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    """Cancellable registration returned by ManualScheduler.call_later."""

    def __init__(self, when: float, seq: int, callback: Callable[[], Any]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler running due callbacks as a FakeClock is advanced."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self._queue: list[FakeHandle] = []
        self._seq = 0

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        handle = FakeHandle(self.clock.now + delay, self._seq, partial(callback, *args))
        self._seq += 1
        self._queue.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self._queue if not h.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every callback that falls due."""
        target = self.clock.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._queue.remove(handle)
            self.clock.now = max(self.clock.now, handle.when)
            handle.callback()
        self.clock.now = target
        self._queue = self.pending


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def make_store(clock: FakeClock, scheduler: ManualScheduler) -> Callable[..., SessionStore]:
    """Factory for stores wired to the fake clock and manual scheduler."""

    def _make(
        breaths_before_hold: int = 1,
        inhale_exhale_time: float = 1.0,
        breath_hold_target: float = 9.0,
        number_of_rounds: int = 2,
        recovery_hold_time: float = 15.0,
        on_error: Optional[Callable] = None,
        **kwargs: Any,
    ) -> SessionStore:
        return SessionStore(
            settings=BreathingSettings(
                breaths_before_hold=breaths_before_hold,
                inhale_exhale_time=inhale_exhale_time,
                breath_hold_target=breath_hold_target,
                number_of_rounds=number_of_rounds,
            ),
            session_params=SessionParams(recovery_hold_time=recovery_hold_time),
            timer_params=TimerParams(tick_interval=TICK_INTERVAL),
            scheduler=scheduler,
            clock=clock,
            on_error=on_error,
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_settings() -> BreathingSettings:
    """Two breaths, two rounds, 1s breaths and a 9s hold target."""
    return BreathingSettings(
        breaths_before_hold=2,
        inhale_exhale_time=1.0,
        breath_hold_target=9.0,
        number_of_rounds=2,
    )


@pytest.fixture
def active_state(sample_settings: BreathingSettings) -> BreathingState:
    """Round-one state of a running Wim Hof session."""
    return WIM_HOF_PROTOCOL.initial_state(sample_settings, recovery_hold_time=15.0, is_active=True)
