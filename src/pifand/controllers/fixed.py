"""Fixed-level controller for the startup fan test."""

from pydantic import Field

from pifand.base.channel import Channel
from pifand.base.errors import ActuatorError
from pifand.base.process import Controller


class FixedLevelController(Controller):
    """Controller that drives every channel to a configured level.

    Temperatures are ignored. The lifecycle manager runs it once before
    sensor discovery so an operator can hear and see both fans spin up.
    A failed write is logged and the remaining channels are still set.
    """

    channels: list[Channel] = Field(
        default_factory=list, description="Channels to drive"
    )
    levels: dict[str, int] = Field(
        default_factory=dict,
        description="Level for each channel, keyed by channel name",
    )

    def _export_state(self) -> dict[str, int]:
        """Write the fixed levels.

        Returns:
            The levels that were accepted, keyed by channel name

        """
        applied = {}
        for channel in self.channels:
            level = self.levels.get(channel.name)
            if level is None:
                continue
            try:
                channel.actuator.set_level(level)
            except ActuatorError as e:
                self._logger.error(
                    f"Failed to set {channel.label} fan for startup test: {e}"
                )
                continue
            applied[channel.name] = level
        return applied
