"""Default configuration parameters for breathing sessions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BreathingSettings:
    """User-adjustable session settings (Wim Hof defaults)."""
    breaths_before_hold: int = 30                    # Breathing cycles per round
    inhale_exhale_time: float = 2.0                  # Seconds per inhale / exhale
    breath_hold_target: float = 90.0                 # Final-round retention target (s)
    number_of_rounds: int = 3


@dataclass(frozen=True)
class SessionParams:
    """Session store parameters."""
    recovery_hold_time: float = 15.0                 # Fixed recovery hold (s)
    history_size: int = 100                          # Retained state snapshots


@dataclass(frozen=True)
class TimerParams:
    """Phase timer parameters."""
    tick_interval: float = 1 / 60                    # One tick per display refresh


@dataclass(frozen=True)
class LoggingParams:
    """Logging parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    settings: BreathingSettings
    session: SessionParams
    timer: TimerParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        settings=BreathingSettings(),
        session=SessionParams(),
        timer=TimerParams(),
        logging=LoggingParams(),
    )
