"""Device classes for the hardware the daemon reads and drives."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .entity import Entity

if TYPE_CHECKING:
    from .config import ChannelConfig


class Device(Entity, ABC):
    """Base class for hardware interface points.

    A Device is one place where the daemon touches hardware: a
    temperature input, a fan, or a thermal zone's governor switch.
    Concrete devices live in ``pifand.environments``; tests substitute
    in-memory mocks.
    """

    def access_problems(self) -> list[str]:
        """Return reasons this device cannot be used, empty if usable.

        Called at startup so every missing or read-only path is reported
        together before the daemon refuses to start.
        """
        return []


class Sensor(Device):
    """A temperature input.

    Readings are whole degrees Celsius. Implementations raise
    ``SensorError`` for unreadable or malformed input and never return a
    substitute value themselves; substitution is the control loop's job.
    """

    @abstractmethod
    def read(self) -> int:
        """Return the current temperature in whole degrees Celsius.

        Raises:
            SensorError: If the value cannot be read or is not numeric

        """


class Actuator(Device):
    """A device whose output level the daemon sets.

    Levels are raw device units: a cooling state index for stepped fans,
    a duty cycle in nanoseconds for PWM fans. Actuators write whatever
    they are told; deciding whether a write is needed is left to the
    caller.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the device for level changes.

        Raises:
            ActuatorError: If the device is missing or cannot be configured

        """

    @abstractmethod
    def set_level(self, level: int) -> None:
        """Write an output level.

        Raises:
            ActuatorError: If the write is rejected

        """

    def release(self) -> None:
        """Give the device back to the system. Default does nothing."""

    def is_writable(self) -> bool:
        """Return True if the level attribute currently accepts writes."""
        return not self.access_problems()


class Governor(Device):
    """The platform's built-in thermal control.

    The daemon disables the governor while it runs and re-enables it on
    shutdown or when temperatures run away.
    """

    @abstractmethod
    def enable(self) -> None:
        """Hand control back to the platform.

        Raises:
            ActuatorError: If the governor cannot be switched

        """

    @abstractmethod
    def disable(self) -> None:
        """Take control away from the platform.

        Raises:
            ActuatorError: If the governor cannot be switched

        """


class SensorSource(ABC):
    """Finds the sensor for a channel at startup."""

    @abstractmethod
    def discover(self, channel: "ChannelConfig") -> Sensor | None:
        """Return the channel's sensor, or None if none is present."""
