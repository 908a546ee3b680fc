"""Exception types raised by pifand devices and the daemon lifecycle."""

from enum import Enum


class PifandError(Exception):
    """Base class for all pifand errors."""


class SensorFailure(str, Enum):
    """Why a temperature read failed."""

    UNREADABLE = "unreadable"
    NOT_NUMERIC = "not_numeric"


class SensorError(PifandError):
    """A temperature sensor could not produce a valid reading."""

    def __init__(self, kind: SensorFailure, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ActuatorError(PifandError):
    """A write to a fan, PWM channel, or thermal zone was rejected."""


class ConfigurationError(PifandError):
    """Configuration violates an invariant the controller relies on."""


class StartupError(PifandError):
    """The daemon cannot reach a state where it is safe to run."""
