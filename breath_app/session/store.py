"""
Session store: the single owner of the canonical BreathingState.

Every control command and every timer event produces a candidate state that
is validated before it replaces the canonical one. Rejected candidates are
discarded, reported through the logger, the history and the injected error
callback, and (for control commands) re-raised to the caller.
"""

import uuid
from collections import deque
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Optional

from ..config.defaults import BreathingSettings, SessionParams, TimerParams
from ..config.loader import ConfigLoader
from ..config.validation import ConfigValidator, ValidationError
from ..errors import BreathingError, InvalidState
from ..logging.config import configure_logging, get_state_logger, log_phase_transition
from ..protocols import WIM_HOF_PROTOCOL, ProtocolDefinition
from ..state.models import BreathingState, StateSnapshot
from ..state.phase_manager import PhaseManager
from ..state.validator import validate_state, validate_transition
from ..timing.timer import PhaseTimer
from ..utils.time import Clock, wall_clock_now

state_logger = get_state_logger(__name__)

# Settings that only change at a round boundary while a session is running
ROUND_SCOPED_SETTINGS = ("breaths_before_hold", "breath_hold_target", "number_of_rounds")

PAUSED_LABEL = "Paused"


@dataclass(frozen=True)
class SessionView:
    """Read-only view handed to renderers on every commit and tick."""
    state: BreathingState
    lung_volume: float
    progress: float
    label: str


Listener = Callable[[SessionView], None]
ErrorCallback = Callable[[BreathingError], None]


def _format_errors(errors: list[ValidationError]) -> str:
    return "; ".join(f"{err.field}: {err.message} (got: {err.value})" for err in errors)


class SessionStore:
    """Owns session state, applies control commands and drives the phase timer."""

    def __init__(
        self,
        protocol: Optional[ProtocolDefinition] = None,
        settings: Optional[BreathingSettings] = None,
        session_params: Optional[SessionParams] = None,
        timer_params: Optional[TimerParams] = None,
        *,
        scheduler: Optional[Any] = None,
        clock: Optional[Clock] = None,
        on_error: Optional[ErrorCallback] = None,
        logger: Optional[Any] = None,
    ) -> None:
        self.protocol = protocol or WIM_HOF_PROTOCOL
        self.session_params = session_params or SessionParams()
        self.logger = logger or state_logger
        self.on_error = on_error

        requested = settings or self.protocol.default_settings
        errors = ConfigValidator.validate_settings(_settings_dict(requested))
        if errors:
            raise InvalidState(f"Invalid settings: {_format_errors(errors)}",
                               field=errors[0].field)

        self._settings = requested
        self._round_settings = requested
        self.phase_manager = PhaseManager(self.protocol)

        timer_params = timer_params or TimerParams()
        self.timer = PhaseTimer(
            on_tick=self._handle_tick,
            on_complete=self._handle_phase_complete,
            on_error=self._handle_timer_error,
            clock=clock,
            scheduler=scheduler,
            tick_interval=timer_params.tick_interval,
        )

        self._listeners: list[Listener] = []
        self._history: deque = deque(maxlen=self.session_params.history_size)
        self._session_id: Optional[str] = None
        self._state = self._fresh_state(requested, is_active=False)
        validate_state(self._state, self.protocol)

    @classmethod
    def from_config(
        cls,
        protocol: Optional[ProtocolDefinition] = None,
        config_dir: Optional[Path] = None,
        overrides: Optional[dict[str, Any]] = None,
        setup_logging: bool = False,
        **kwargs: Any,
    ) -> "SessionStore":
        """
        Build a store from defaults, protocol YAML overrides and session overrides.

        Raises:
            InvalidState: if the merged configuration fails validation
        """
        protocol = protocol or WIM_HOF_PROTOCOL
        loader = ConfigLoader.create(config_dir)
        try:
            config = loader.merge_config(protocol.id, overrides)
        except ValueError as exc:
            raise InvalidState(
                f"Invalid configuration file: {exc}",
                field="protocols",
                context={"protocol": protocol.id, "path": str(loader.protocols_file)}
            ) from exc

        errors = ConfigValidator.validate_config(config)
        if errors:
            raise InvalidState(
                f"Invalid configuration: {_format_errors(errors)}",
                field=errors[0].field,
                context={"protocol": protocol.id}
            )

        if setup_logging:
            configure_logging(**config["logging"])

        return cls(
            protocol=protocol,
            settings=BreathingSettings(**config["settings"]),
            session_params=SessionParams(**config["session"]),
            timer_params=TimerParams(**config["timer"]),
            **kwargs,
        )

    # -- read surface --------------------------------------------------------

    @property
    def state(self) -> BreathingState:
        return self._state

    @property
    def settings(self) -> BreathingSettings:
        """Most recently requested settings."""
        return self._settings

    @property
    def pending_settings(self) -> dict[str, Any]:
        """Round-scoped settings that take effect at the next round boundary."""
        return {
            name: getattr(self._settings, name)
            for name in ROUND_SCOPED_SETTINGS
            if getattr(self._settings, name) != getattr(self._round_settings, name)
        }

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def history(self) -> list[StateSnapshot]:
        return list(self._history)

    @property
    def phase_label(self) -> str:
        if self._state.session.is_paused:
            return PAUSED_LABEL
        return self.protocol.label_for(self._state.pair)

    def snapshot(self) -> SessionView:
        return SessionView(
            state=self._state,
            lung_volume=self._state.animation.lung_volume,
            progress=self._state.animation.progress,
            label=self.phase_label,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- control surface -----------------------------------------------------

    def start_session(self) -> BreathingState:
        """
        Start a new session at round one.

        Raises:
            InvalidState: if a session is already active
            TimerSyncError: if the phase timer cannot be armed; the idle state is kept
        """
        action = "start_session"
        try:
            if self._state.session.is_active:
                raise InvalidState(
                    "Session is already active",
                    field="session.is_active",
                    context={"session_id": self._session_id}
                )

            self.timer.stop()
            candidate = self._fresh_state(self._settings, is_active=True)
            self._check(candidate)

            previous, previous_id = self._state, self._session_id
            self._session_id = uuid.uuid4().hex
            self._replace(candidate, action=None)
            try:
                self.timer.start(self.protocol.duration_for(candidate))
            except BreathingError:
                self._rollback(previous, session_id=previous_id)
                raise

            self._round_settings = self._settings
            self._history.append(StateSnapshot(
                timestamp=wall_clock_now(), state=candidate, action=action
            ))

            log_phase_transition(
                self.logger,
                session_id=self._session_id,
                from_phase=str(previous.pair),
                to_phase=str(candidate.pair),
                trigger=action,
                context={
                    "total_rounds": candidate.session.total_rounds,
                    "max_breaths": candidate.phase.max_breaths,
                    "hold_time": candidate.timing.hold_time,
                }
            )
        except BreathingError as error:
            self._report(error, action)
            raise

        return self._state

    def pause_session(self) -> BreathingState:
        """Pause the active session. No-op if already paused or inactive."""
        action = "pause_session"
        session = self._state.session
        if not session.is_active or session.is_paused:
            return self._state

        try:
            candidate = self._state.with_session(is_paused=True)
            self._check(candidate)
            self.timer.pause()
            self._replace(candidate, action)
            self.logger.info("Session paused", session_id=self._session_id,
                             phase=str(candidate.pair), progress=candidate.animation.progress)
        except BreathingError as error:
            self._report(error, action)
            raise

        return self._state

    def resume_session(self) -> BreathingState:
        """Resume a paused session. No-op if not paused."""
        action = "resume_session"
        session = self._state.session
        if not session.is_active or not session.is_paused:
            return self._state

        try:
            candidate = self._state.with_session(is_paused=False)
            self._check(candidate)
            self._replace(candidate, action)
            self.logger.info("Session resumed", session_id=self._session_id,
                             phase=str(candidate.pair))
            self.timer.resume()
        except BreathingError as error:
            self._report(error, action)
            raise

        return self._state

    def stop_session(self) -> BreathingState:
        """Halt the timer and reset to the initial state. Always safe."""
        action = "stop_session"
        self.timer.stop()

        try:
            candidate = self._fresh_state(self._settings, is_active=False)
            self._check(candidate)
            self._round_settings = self._settings
            previous = self._state
            self._replace(candidate, action)

            if previous.session.is_active:
                log_phase_transition(
                    self.logger,
                    session_id=self._session_id,
                    from_phase=str(previous.pair),
                    to_phase=str(candidate.pair),
                    trigger=action,
                    context={"stopped_in_round": previous.session.current_round}
                )
            self._session_id = None
        except BreathingError as error:
            self._report(error, action)
            raise

        return self._state

    def update_settings(
        self,
        breaths_before_hold: Optional[int] = None,
        inhale_exhale_time: Optional[float] = None,
        breath_hold_target: Optional[float] = None,
        number_of_rounds: Optional[int] = None,
    ) -> BreathingState:
        """
        Merge new settings.

        While no session is running every value applies immediately. During a
        session the inhale/exhale time applies from the next sub-phase and
        the round-scoped values from the next round.

        Raises:
            InvalidState: if a provided value fails validation
        """
        action = "update_settings"
        changes = {
            name: value for name, value in (
                ("breaths_before_hold", breaths_before_hold),
                ("inhale_exhale_time", inhale_exhale_time),
                ("breath_hold_target", breath_hold_target),
                ("number_of_rounds", number_of_rounds),
            ) if value is not None
        }

        try:
            errors = ConfigValidator.validate_settings(changes)
            if errors:
                raise InvalidState(
                    f"Invalid settings: {_format_errors(errors)}",
                    field=errors[0].field,
                    context={"errors": [f"{err.field}: {err.message}" for err in errors]}
                )

            requested = replace(self._settings, **changes)

            if self._state.session.is_active:
                candidate = self._state
                if inhale_exhale_time is not None:
                    candidate = candidate.with_timing(
                        inhale_time=float(inhale_exhale_time),
                        exhale_time=float(inhale_exhale_time),
                    )
                round_settings = replace(
                    self._round_settings, inhale_exhale_time=requested.inhale_exhale_time
                )
            else:
                candidate = self._fresh_state(requested, is_active=False)
                round_settings = requested

            self._check(candidate)
            self._settings = requested
            self._round_settings = round_settings
            self._replace(candidate, action)

            self.logger.info(
                "Settings updated",
                session_id=self._session_id,
                changes=changes,
                pending=self.pending_settings
            )
        except BreathingError as error:
            self._report(error, action)
            raise

        return self._state

    # -- timer events --------------------------------------------------------

    def _handle_tick(self, progress: float) -> None:
        try:
            volume = self.phase_manager.volume_at(self._state, progress)
            candidate = self._state.with_animation(lung_volume=volume, progress=progress)
            self._check(candidate)
            self._replace(candidate, action=None)
        except BreathingError as error:
            self.timer.stop()
            self._report(error, "tick")

    def _handle_phase_complete(self) -> None:
        action = "phase_complete"
        completed = self._state
        round_settings = self._round_settings
        committed = False
        try:
            prev = self._state
            ends_round = self.protocol.transition_for(prev.pair).ends_round
            if ends_round:
                prev = self._apply_round_settings(prev)

            delta = self.phase_manager.advance(prev)
            candidate = prev.merge(delta)

            if candidate.session.current_round != prev.session.current_round:
                candidate = candidate.with_timing(hold_time=self.protocol.hold_duration_for_round(
                    candidate.session.current_round,
                    candidate.session.total_rounds,
                    self._settings.breath_hold_target,
                ))

            self._check(candidate)
            if candidate.pair != prev.pair:
                validate_transition(prev, candidate, self.protocol)

            if ends_round:
                self._round_settings = self._settings
            self._replace(candidate, action=None)
            committed = True

            if not self.protocol.is_terminal(candidate.pair):
                self.timer.start(self.protocol.duration_for(candidate))

            self._history.append(StateSnapshot(
                timestamp=wall_clock_now(), state=candidate, action=action
            ))
            log_phase_transition(
                self.logger,
                session_id=self._session_id,
                from_phase=str(prev.pair),
                to_phase=str(candidate.pair),
                trigger=action,
                context={
                    "current_round": candidate.session.current_round,
                    "breath_count": candidate.phase.breath_count,
                }
            )

            if self.protocol.is_terminal(candidate.pair):
                self.logger.info("Session complete", session_id=self._session_id,
                                 rounds=candidate.session.total_rounds)
        except BreathingError as error:
            if committed:
                self.timer.stop()
                self._round_settings = round_settings
                self._rollback(completed, session_id=self._session_id)
            self._report(error, action)

    def _handle_timer_error(self, error: BreathingError) -> None:
        self._report(error, "timer")

    # -- helpers -------------------------------------------------------------

    def _fresh_state(self, settings: BreathingSettings, is_active: bool) -> BreathingState:
        return self.protocol.initial_state(
            settings,
            recovery_hold_time=self.session_params.recovery_hold_time,
            is_active=is_active,
        )

    def _apply_round_settings(self, state: BreathingState) -> BreathingState:
        """Fold pending round-scoped settings in before the round boundary is crossed."""
        if not self.pending_settings:
            return state

        # Never drop below the round in progress
        total_rounds = max(self._settings.number_of_rounds, state.session.current_round)
        folded = state.with_session(total_rounds=total_rounds).with_phase(
            max_breaths=self._settings.breaths_before_hold
        )
        self.logger.info("Applying pending settings at round boundary",
                         session_id=self._session_id, pending=self.pending_settings)
        return folded

    def _check(self, candidate: BreathingState) -> None:
        validate_state(candidate, self.protocol)

    def _replace(self, candidate: BreathingState, action: Optional[str]) -> None:
        self._state = candidate
        if action is not None:
            self._history.append(StateSnapshot(
                timestamp=wall_clock_now(), state=candidate, action=action
            ))

        view = self.snapshot()
        for listener in list(self._listeners):
            listener(view)

    def _rollback(self, previous: BreathingState, session_id: Optional[str]) -> None:
        """Restore the last good state after a command failed past its commit point."""
        self.logger.warning("Rolling back to last committed state",
                            session_id=self._session_id, phase=str(previous.pair))
        self._session_id = session_id
        self._replace(previous, action=None)

    def _report(self, error: BreathingError, action: str) -> None:
        self.logger.error(
            "Breathing session error",
            session_id=self._session_id,
            action=action,
            error_type=error.error_type.value,
            error=str(error),
            context=error.context
        )
        self._history.append(StateSnapshot(
            timestamp=wall_clock_now(), state=self._state, action=action, error=error
        ))
        if self.on_error:
            self.on_error(error)


def _settings_dict(settings: BreathingSettings) -> dict[str, Any]:
    return {f.name: getattr(settings, f.name) for f in fields(settings)}
