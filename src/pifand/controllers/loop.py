"""The periodic control loop for the CPU and NVMe fans."""

import logging
from typing import Any

from pydantic import Field

from pifand.base.channel import Channel
from pifand.base.device import Governor
from pifand.base.errors import ActuatorError, SensorError
from pifand.base.process import Controller
from pifand.base.runner import CancellationToken
from pifand.base.state import ChannelState, TickReport, derive_mode

from .failsafe import FailureEscalation, RunawayGuard
from .hysteresis import next_tier, target_tier

report_logger = logging.getLogger("pifand.report")


class ControlLoop(Controller):
    """Reads both sensors and moves both fans, once per interval.

    Each execution is one tick:

    - ``_import_state()`` reads every active sensor through failure
      escalation, so each channel ends up with a temperature for the
      tick (real, last known good, or synthetic).
    - ``_think()`` runs the runaway guard, then hysteresis for every
      channel the guard did not override.
    - ``_export_state()`` checks every fan still accepts writes, writes
      only the levels that changed, restores the platform governor on
      runaway, and emits the state report.

    Runtime state is rebuilt by ``initialize()``; nothing survives a
    restart.
    """

    primary: Channel = Field(description="Stepped CPU fan channel")
    secondary: Channel = Field(description="PWM NVMe fan channel")
    hysteresis: int = Field(
        default=3, ge=0, description="Descent margin shared by both channels"
    )
    escalation: FailureEscalation = Field(default_factory=FailureEscalation)
    guard: RunawayGuard = Field(default_factory=RunawayGuard)
    governor: Governor | None = Field(
        default=None, description="Platform governor restored on runaway"
    )

    def __init__(
        self, token: CancellationToken | None = None, **data: Any
    ) -> None:
        super().__init__(**data)
        self._token = token
        self._states: dict[str, ChannelState] = {}
        self._targets: dict[str, tuple[int, int]] = {}
        self._runaway = False
        self._governor_restored = False
        self._last_report: TickReport | None = None
        self._unwritable: set[str] = set()

    @property
    def channels(self) -> list[Channel]:
        return [self.primary, self.secondary]

    @property
    def last_report(self) -> TickReport | None:
        """Return the report of the most recent tick."""
        return self._last_report

    def state(self, channel: Channel) -> ChannelState:
        """Return the runtime state of a channel."""
        return self._states[channel.name]

    def initialize(self) -> None:
        """Start every channel at its conservative default tier."""
        super().initialize()
        self._states = {}
        for channel in self.channels:
            tier = channel.config.default_tier if channel.active else 0
            self._states[channel.name] = ChannelState(
                active=channel.active, tier=tier
            )
        self._targets = {}
        self._runaway = False
        self._governor_restored = False
        self._last_report = None
        self._unwritable = set()

        for channel in self.channels:
            config = channel.config
            self._logger.info(
                f"{config.label} thresholds: "
                f"{'/'.join(str(t) for t in config.thresholds)}C"
                + ("" if channel.active else " (no sensor, held off)")
            )
        self._logger.info(f"Hysteresis: {self.hysteresis}C")

    def _import_state(self) -> None:
        if not self._states:
            self.initialize()
        for channel in self.channels:
            state = self.state(channel)
            if not channel.active:
                state.temperature = None
                continue
            try:
                temp = channel.sensor.read()
            except SensorError as e:
                self.escalation.record_failure(state, e, channel.config)
            else:
                self.escalation.record_success(state, temp)

    def _think(self) -> None:
        pairs = [(ch.config, self.state(ch)) for ch in self.channels]
        tripped = self.guard.tripped(pairs)
        self._runaway = bool(tripped)
        if self._runaway:
            readings = ", ".join(
                f"{ch.label}: {self.state(ch).temperature}C "
                f"(critical: {ch.config.critical_temp}C)"
                for ch in self.channels
                if ch.active
            )
            self._logger.error(f"CRITICAL TEMPERATURE ALERT! {readings}")

        self._targets = {}
        for channel in self.channels:
            self._targets[channel.name] = self._decide(channel)

    def _decide(self, channel: Channel) -> tuple[int, int]:
        """Return the (tier, level) a channel should have this tick."""
        config = channel.config
        state = self.state(channel)
        if not channel.active:
            return 0, config.off_level
        if self._runaway or state.latched:
            return config.top_tier, config.emergency_level
        if state.temperature is None:
            # Never read successfully; hold where we are.
            return state.tier, config.levels[state.tier]
        tier = next_tier(
            state.temperature, state.tier, config, self.hysteresis
        )
        if tier == state.tier and target_tier(state.temperature, config) < tier:
            self._logger.debug(
                f"{config.label} hysteresis active: "
                f"temp={state.temperature}C, staying at tier {tier}"
            )
        return tier, config.levels[tier]

    def _export_state(self) -> TickReport:
        if self._runaway:
            self._restore_governor()

        for channel in self.channels:
            self._check_writable(channel)
            tier, level = self._targets[channel.name]
            self._apply(channel, tier, level)

        primary = self.state(self.primary)
        secondary = self.state(self.secondary)
        report = TickReport(
            mode=derive_mode(list(self._states.values()), self._runaway),
            primary_temp=primary.temperature or 0,
            primary_level=primary.level or 0,
            secondary_temp=secondary.temperature or 0,
            secondary_level=secondary.level or 0,
        )
        report_logger.info(
            report.format_line(
                self.primary.label,
                self.secondary.label,
                self.secondary.duty_period or 1,
            )
        )
        self._last_report = report
        return report

    def _apply(self, channel: Channel, tier: int, level: int) -> None:
        """Write a level if it differs from the one last accepted.

        A rejected write leaves the tracked tier and level untouched, so
        the next tick computes from the old state and writes again.
        """
        state = self.state(channel)
        if level == state.level:
            state.tier = tier
            return
        if self._token is not None and self._token.cancelled:
            self._logger.debug(
                f"Shutdown requested, not changing {channel.label}"
            )
            return
        try:
            channel.actuator.set_level(level)
        except ActuatorError as e:
            self._logger.error(
                f"Failed to set {channel.label} fan to "
                f"{channel.describe_level(level)}: {e}"
            )
            return

        self._logger.info(
            f"{channel.label} fan changed: "
            f"{channel.describe_level(state.level)} -> "
            f"{channel.describe_level(level)} "
            f"(temp: {state.temperature}C)"
        )
        state.tier = tier
        state.level = level

    def _check_writable(self, channel: Channel) -> None:
        """Log once when a fan stops accepting writes, and once on return."""
        writable = channel.actuator.is_writable()
        if not writable and channel.name not in self._unwritable:
            self._unwritable.add(channel.name)
            self._logger.error(
                f"Lost sysfs write access to {channel.label} fan "
                f"({channel.actuator.name})"
            )
        elif writable and channel.name in self._unwritable:
            self._unwritable.discard(channel.name)
            self._logger.info(f"{channel.label} fan write access restored")

    def _restore_governor(self) -> None:
        if self.governor is None or self._governor_restored:
            return
        try:
            self.governor.enable()
        except ActuatorError as e:
            self._logger.error(f"Failed to re-enable thermal governor: {e}")
            return
        self._governor_restored = True
        self._logger.error(
            "Emergency cooling activated - fans at maximum speed, "
            "automatic thermal control re-enabled"
        )
