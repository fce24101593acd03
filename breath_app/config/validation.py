"""Configuration validation utilities."""

from dataclasses import dataclass, fields
from typing import Any

from .defaults import BreathingSettings, LoggingParams, SessionParams, TimerParams

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CONFIG_SECTIONS = {
    "settings": BreathingSettings,
    "session": SessionParams,
    "timer": TimerParams,
    "logging": LoggingParams,
}


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_settings(params: dict[str, Any]) -> list[ValidationError]:
        """Validate breathing settings. Absent keys are not checked."""
        errors = []

        for name in ("breaths_before_hold", "number_of_rounds"):
            if name in params and not _is_positive_int(params[name]):
                errors.append(ValidationError(
                    field=name,
                    message="Must be a positive integer",
                    value=params[name]
                ))

        for name in ("inhale_exhale_time", "breath_hold_target"):
            if name in params and not _is_positive_number(params[name]):
                errors.append(ValidationError(
                    field=name,
                    message="Must be a positive number",
                    value=params[name]
                ))

        return errors

    @staticmethod
    def validate_session_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate session store parameters."""
        errors = []

        if "recovery_hold_time" in params:
            value = params["recovery_hold_time"]
            if not _is_positive_number(value):
                errors.append(ValidationError(
                    field="recovery_hold_time",
                    message="Must be a positive number",
                    value=value
                ))

        if "history_size" in params:
            value = params["history_size"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="history_size",
                    message="Must be a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_timer_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate phase timer parameters."""
        errors = []

        if "tick_interval" in params and not _is_positive_number(params["tick_interval"]):
            errors.append(ValidationError(
                field="tick_interval",
                message="Must be a positive number",
                value=params["tick_interval"]
            ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params and not isinstance(params["format_json"], bool):
            errors.append(ValidationError(
                field="format_json",
                message="Must be a boolean",
                value=params["format_json"]
            ))

        return errors

    @staticmethod
    def validate_sections(config: dict[str, Any]) -> list[ValidationError]:
        """Check that every section is known, is a mapping and has only known keys."""
        errors = []

        for section, values in config.items():
            if section not in CONFIG_SECTIONS:
                errors.append(ValidationError(
                    field=section,
                    message=f"Unknown section, expected one of {', '.join(CONFIG_SECTIONS)}",
                    value=values
                ))
                continue

            if not isinstance(values, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=values
                ))
                continue

            known = {f.name for f in fields(CONFIG_SECTIONS[section])}
            for key in values:
                if key not in known:
                    errors.append(ValidationError(
                        field=f"{section}.{key}",
                        message="Unknown parameter",
                        value=values[key]
                    ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = ConfigValidator.validate_sections(config)
        if errors:
            return errors

        if "settings" in config:
            errors.extend(ConfigValidator.validate_settings(config["settings"]))

        if "session" in config:
            errors.extend(ConfigValidator.validate_session_params(config["session"]))

        if "timer" in config:
            errors.extend(ConfigValidator.validate_timer_params(config["timer"]))

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"]))

        return errors
