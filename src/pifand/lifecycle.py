"""Startup and shutdown sequencing for the fan control daemon.

The daemon moves through ``INIT -> STARTUP_TEST -> RUNNING ->
SHUTTING_DOWN -> STOPPED``. Startup failures are fatal. Shutdown runs
exactly once and always leaves both fans spinning at their safe level
with the platform's own thermal governor back in charge.
"""

import logging
import os
import signal
import threading
from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field

from pifand.base.channel import Channel
from pifand.base.config import DaemonConfig
from pifand.base.device import Actuator, Governor, SensorSource
from pifand.base.entity import Entity
from pifand.base.errors import ActuatorError, ConfigurationError, StartupError
from pifand.base.runner import CancellationToken, StandardRunner
from pifand.controllers import ControlLoop, FailureEscalation, FixedLevelController
from pifand.environments import (
    CoolingDeviceActuator,
    HwmonSensorSource,
    PwmActuator,
    ThermalGovernor,
)


class LifecyclePhase(str, Enum):
    """Where the daemon is in its lifecycle."""

    INIT = "init"
    STARTUP_TEST = "startup_test"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class LifecycleManager(Entity):
    """Owns the hardware for one daemon run and sequences its use.

    Signal handlers only cancel the token. The running control loop
    notices the cancellation, the runner returns, and ``shutdown()``
    runs in the main thread. ``shutdown()`` is guarded so a second
    signal, or a second caller, cannot run it again.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    config: DaemonConfig = Field(description="Validated daemon configuration")
    primary_actuator: Actuator = Field(description="Stepped CPU fan")
    secondary_actuator: Actuator = Field(description="PWM NVMe fan")
    governor: Governor = Field(description="Platform thermal governor")
    sensor_source: SensorSource = Field(description="Finds sensors at startup")

    def __init__(
        self, token: CancellationToken | None = None, **data: Any
    ) -> None:
        super().__init__(**data)
        self._logger = logging.getLogger(
            f"{self.__class__.__module__}.{self.__class__.__name__}."
            f"{self.name}"
        )
        self._token = token or CancellationToken()
        self._phase = LifecyclePhase.INIT
        self._shutdown_lock = threading.Lock()
        self._shutdown_started = False
        self._governor_disabled = False
        self._loop: ControlLoop | None = None

    @classmethod
    def from_config(cls, config: DaemonConfig) -> "LifecycleManager":
        """Build a manager wired to the real sysfs hardware."""
        hardware = config.hardware
        secondary = config.secondary
        return cls(
            name="pifand",
            config=config,
            primary_actuator=CoolingDeviceActuator(
                name=f"{config.primary.name}_fan", path=hardware.cooling_device
            ),
            secondary_actuator=PwmActuator(
                name=f"{secondary.name}_fan",
                chip=hardware.pwm_chip,
                channel=hardware.pwm_channel,
                period=hardware.pwm_period,
                initial_duty=secondary.levels[secondary.default_tier],
                settle_s=hardware.settle_s,
            ),
            governor=ThermalGovernor(
                name="thermal_zone", path=hardware.thermal_zone
            ),
            sensor_source=HwmonSensorSource(hardware.hwmon_root),
        )

    @property
    def phase(self) -> LifecyclePhase:
        return self._phase

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def loop(self) -> ControlLoop | None:
        """Return the control loop once sensors have been discovered."""
        return self._loop

    def cancel(self) -> None:
        """Request shutdown. Safe to call from a signal handler."""
        self._token.cancel()

    def install_signal_handlers(self) -> None:
        """Route SIGTERM and SIGINT to ``cancel()``."""
        for signum in (signal.SIGTERM, signal.SIGINT):
            signal.signal(signum, self._handle_signal)

    def _handle_signal(self, signum: int, frame: Any) -> None:
        self.cancel()

    def _hardware_channels(self) -> list[Channel]:
        """Return both channels without sensors attached."""
        return [
            Channel(
                name=self.config.primary.name,
                config=self.config.primary,
                actuator=self.primary_actuator,
            ),
            Channel(
                name=self.config.secondary.name,
                config=self.config.secondary,
                actuator=self.secondary_actuator,
                duty_period=self.config.hardware.pwm_period,
            ),
        ]

    def initialize(self) -> None:
        """Check configuration and hardware, then take over the fans.

        Raises:
            StartupError: If the configuration is invalid, a required path
                is missing or read-only, or an actuator cannot be set up.
                Configuration and permission problems are raised before
                anything is written.

        """
        self._phase = LifecyclePhase.INIT
        self._logger.info("Fan Control Daemon Starting")
        try:
            self.config.check_invariants()
        except ConfigurationError as e:
            raise StartupError(f"Configuration invalid: {e}") from e

        self._logger.info("Checking permissions...")
        problems = []
        if self.config.hardware.require_root and os.geteuid() != 0:
            problems.append("This daemon must be run as root")
        for device in (
            self.governor,
            self.secondary_actuator,
            self.primary_actuator,
        ):
            problems.extend(device.access_problems())
        if problems:
            for problem in problems:
                self._logger.error(problem)
            raise StartupError(
                f"Permission check failed ({len(problems)} errors)"
            )
        self._logger.info("Permission check passed")

        try:
            self.governor.disable()
            self._governor_disabled = True
            self.secondary_actuator.initialize()
            self.primary_actuator.initialize()
        except ActuatorError as e:
            raise StartupError(str(e)) from e

    def startup_test(self) -> None:
        """Hold both fans at their startup level for a while.

        Skipped when disabled in configuration. The wait ends early if
        shutdown is requested.
        """
        if not self.config.startup_test_enabled:
            self._logger.info("Startup test disabled - skipping")
            return
        if self._token.cancelled:
            self._logger.info("Shutdown requested - skipping startup test")
            return

        self._phase = LifecyclePhase.STARTUP_TEST
        duration = self.config.startup_test_duration
        self._logger.info(f"Running {duration:g}-second startup test...")
        controller = FixedLevelController(
            name="startup_test",
            channels=self._hardware_channels(),
            levels={
                self.config.primary.name: self.config.primary.startup_level,
                self.config.secondary.name: self.config.secondary.startup_level,
            },
        )
        controller.execute()
        if self._token.wait(duration):
            self._logger.info("Startup test interrupted by shutdown request")
            return
        self._logger.info(
            "Startup test complete - switching to temperature-based control"
        )

    def discover_channels(self) -> tuple[Channel, Channel]:
        """Attach freshly discovered sensors to both channels.

        Raises:
            StartupError: If a required channel has no sensor

        """
        self._logger.info("Discovering temperature sensors...")
        channels = []
        for channel in self._hardware_channels():
            sensor = self.sensor_source.discover(channel.config)
            if sensor is None:
                if channel.config.required:
                    raise StartupError(
                        f"{channel.label} temperature sensor not found"
                    )
                self._logger.info(
                    f"{channel.label} temperature sensor not found - "
                    f"{channel.label} fan control disabled"
                )
            else:
                self._logger.info(f"{channel.label} sensor found: {sensor.name}")
            channels.append(channel.model_copy(update={"sensor": sensor}))
        return channels[0], channels[1]

    def build_loop(self, primary: Channel, secondary: Channel) -> ControlLoop:
        """Create the control loop for the discovered channels."""
        return ControlLoop(
            token=self._token,
            name="control_loop",
            interval_ns=self.config.loop_interval_ns,
            primary=primary,
            secondary=secondary,
            hysteresis=self.config.hysteresis,
            escalation=FailureEscalation(
                max_failures=self.config.max_sensor_failures
            ),
            governor=self.governor,
        )

    def run(self) -> int:
        """Run the daemon until cancelled.

        Returns:
            Process exit code: 0 after a clean shutdown, 1 if startup
            failed

        """
        try:
            self.initialize()
            self.startup_test()
            if not self._token.cancelled:
                primary, secondary = self.discover_channels()
                self._loop = self.build_loop(primary, secondary)
                self._phase = LifecyclePhase.RUNNING
                self._logger.info(
                    f"Entering main control loop "
                    f"(interval: {self.config.loop_interval:g}s)"
                )
                StandardRunner(
                    token=self._token, name="main", main_process=self._loop
                ).run()
        except StartupError as e:
            self._logger.error(f"Startup failed: {e}")
            if self._governor_disabled:
                self.shutdown()
            return 1
        except Exception:
            self._logger.exception("Unexpected error, shutting down")
            if self._governor_disabled:
                self.shutdown()
            return 1

        self.shutdown()
        return 0

    def shutdown(self) -> None:
        """Leave the hardware safe. Runs at most once.

        Both fans are set to their safe level (never off), the platform
        governor is re-enabled, and the PWM channel is released. Each
        step is attempted even if an earlier one fails.
        """
        with self._shutdown_lock:
            if self._shutdown_started:
                return
            self._shutdown_started = True

        self._phase = LifecyclePhase.SHUTTING_DOWN
        self._logger.info("Fan control service shutting down...")

        applied = {}
        for channel in self._hardware_channels():
            level = channel.config.safe_level
            try:
                channel.actuator.set_level(level)
            except ActuatorError as e:
                self._logger.error(
                    f"Failed to set {channel.label} fan to safe level: {e}"
                )
                continue
            applied[channel.label] = channel.describe_level(level)

        try:
            self.governor.enable()
        except ActuatorError as e:
            self._logger.error(f"Failed to re-enable thermal governor: {e}")

        try:
            self.secondary_actuator.release()
        except ActuatorError as e:
            self._logger.error(f"Failed to release PWM channel: {e}")

        final = ", ".join(f"{label}: {level}" for label, level in applied.items())
        self._logger.info(f"Final fan levels: {final or 'none applied'}")
        self._phase = LifecyclePhase.STOPPED
        self._logger.info("Fan control service stopped cleanly")
