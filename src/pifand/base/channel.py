"""Channel: one controlled cooling path and the hardware behind it."""

from pydantic import Field

from .config import ChannelConfig
from .device import Actuator, Sensor
from .entity import Entity


class Channel(Entity):
    """A channel's configuration together with its sensor and fan.

    ``sensor`` is None when discovery found no matching device; such a
    channel is held at its off level and ignored by failure and runaway
    handling.
    """

    config: ChannelConfig = Field(description="Thresholds and levels")
    actuator: Actuator = Field(description="Fan driven by this channel")
    sensor: Sensor | None = Field(
        default=None, description="Temperature input, if one was found"
    )
    duty_period: int | None = Field(
        default=None,
        description="PWM period when the actuator is duty-cycle driven",
    )

    @property
    def label(self) -> str:
        return self.config.label

    @property
    def active(self) -> bool:
        """Return True if the channel has a sensor to act on."""
        return self.sensor is not None

    def describe_level(self, level: int | None) -> str:
        """Render a level the way change events report it."""
        if level is None:
            return "unknown"
        if self.duty_period:
            return f"{level} ({level * 100 // self.duty_period}%)"
        return str(level)
