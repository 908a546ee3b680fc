"""Sensor failure escalation and thermal runaway detection.

These two guards sit in front of the hysteresis engine. Failure
escalation decides which temperature a channel uses when its sensor
misbehaves; the runaway guard decides whether hysteresis runs at all.
"""

import logging

from pydantic import BaseModel, ConfigDict, Field

from pifand.base.config import ChannelConfig
from pifand.base.errors import SensorError
from pifand.base.state import ChannelState

logger = logging.getLogger(__name__)

# Reported for a latched channel so a stale last-known-good reading can
# never walk it out of emergency cooling.
SYNTHETIC_TEMPERATURE = 999


class FailureEscalation(BaseModel):
    """Consecutive-failure counting with last-known-good fallback.

    One failed read substitutes the last good temperature. Once
    ``max_failures`` reads in a row have failed the channel latches into
    emergency cooling; only a successful read clears the latch.
    """

    model_config = ConfigDict(frozen=True)

    max_failures: int = Field(
        default=3,
        ge=1,
        description="Consecutive failures that latch emergency cooling",
    )

    def record_success(self, state: ChannelState, temp: int) -> int:
        """Record a good reading and return it as this tick's temperature."""
        if state.latched:
            logger.info(
                f"Sensor recovered at {temp}C after {state.failures} failures"
            )
        state.failures = 0
        state.latched = False
        state.last_good = temp
        state.temperature = temp
        return temp

    def record_failure(
        self, state: ChannelState, error: SensorError, channel: ChannelConfig
    ) -> int | None:
        """Record a failed read and return the temperature to use.

        Returns:
            ``SYNTHETIC_TEMPERATURE`` once latched, otherwise the last good
            reading, or None if the channel has never read successfully

        """
        state.failures += 1
        if state.failures >= self.max_failures:
            if not state.latched:
                logger.error(
                    f"{channel.label} sensor failures exceeded threshold "
                    f"({state.failures}/{self.max_failures}): {error} - "
                    f"ENTERING EMERGENCY MODE"
                )
            state.latched = True
            state.temperature = SYNTHETIC_TEMPERATURE
        else:
            logger.debug(
                f"Failed to read {channel.label} temperature "
                f"(failure {state.failures}/{self.max_failures}): {error}; "
                f"using last known value {state.last_good}"
            )
            state.temperature = state.last_good
        return state.temperature


class RunawayGuard(BaseModel):
    """Hard temperature ceiling check across all channels."""

    model_config = ConfigDict(frozen=True)

    def tripped(
        self, channels: list[tuple[ChannelConfig, ChannelState]]
    ) -> list[ChannelConfig]:
        """Return the channels at or above their critical temperature.

        Inactive channels, channels without a temperature yet, and latched
        channels (whose temperature is synthetic) are not considered.
        """
        return [
            config
            for config, state in channels
            if state.active
            and not state.latched
            and state.temperature is not None
            and state.temperature >= config.critical_temp
        ]
