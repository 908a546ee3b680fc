"""Runtime state of the control loop and the per-tick report."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DaemonMode(str, Enum):
    """Health of the control loop, derived fresh on every tick."""

    NORMAL = "normal"
    SENSOR_DEGRADED = "sensor_degraded"
    EMERGENCY = "emergency"
    RUNAWAY = "runaway"

    @property
    def status(self) -> str:
        """Return the status token written to state report lines."""
        return _STATUS_TOKENS[self]


_STATUS_TOKENS = {
    DaemonMode.NORMAL: "OK",
    DaemonMode.SENSOR_DEGRADED: "SENSOR_ERROR",
    DaemonMode.EMERGENCY: "EMERGENCY",
    DaemonMode.RUNAWAY: "THERMAL_RUNAWAY",
}


class ChannelState(BaseModel):
    """Mutable runtime state for one cooling channel.

    Owned by the control loop and rebuilt every time the loop is
    initialized. ``level`` is the last level the actuator accepted; it is
    ``None`` until the first successful write so that write is never
    skipped.
    """

    model_config = ConfigDict(frozen=False)

    active: bool = Field(
        default=True,
        description="False when no sensor was found for the channel",
    )
    tier: int = Field(default=0, ge=0, description="Current tier")
    level: int | None = Field(
        default=None, description="Level last accepted by the actuator"
    )
    failures: int = Field(
        default=0, ge=0, description="Consecutive failed sensor reads"
    )
    last_good: int | None = Field(
        default=None, description="Last successfully read temperature (C)"
    )
    latched: bool = Field(
        default=False,
        description="Whether repeated failures forced emergency output",
    )
    temperature: int | None = Field(
        default=None,
        description="Temperature (C) used for this tick's decisions",
    )


def derive_mode(states: list[ChannelState], runaway: bool) -> DaemonMode:
    """Project channel states onto a single daemon mode.

    Args:
        states: Runtime state of every channel
        runaway: Whether this tick tripped the runaway guard

    Returns:
        The most severe mode that applies

    """
    if runaway:
        return DaemonMode.RUNAWAY
    if any(state.latched for state in states):
        return DaemonMode.EMERGENCY
    if any(state.failures > 0 for state in states):
        return DaemonMode.SENSOR_DEGRADED
    return DaemonMode.NORMAL


class TickReport(BaseModel):
    """Snapshot of one control tick, as handed to the logging sink."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=datetime.now)
    mode: DaemonMode = DaemonMode.NORMAL
    primary_temp: int = 0
    primary_level: int = 0
    secondary_temp: int = 0
    secondary_level: int = 0

    def format_line(
        self, primary_label: str, secondary_label: str, period: int
    ) -> str:
        """Render the fixed-width state report line."""
        percent = self.secondary_level * 100 // period
        return (
            f"{self.timestamp:%Y-%m-%d %H:%M:%S} | "
            f"{primary_label}: {self.primary_temp:3d}C "
            f"(State: {self.primary_level}) | "
            f"{secondary_label}: {self.secondary_temp:3d}C "
            f"(Duty: {self.secondary_level:5d}/{period}, {percent:3d}%) | "
            f"{self.mode.status}"
        )
