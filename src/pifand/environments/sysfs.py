"""Linux sysfs implementations of sensors, fans and the thermal governor.

Everything here is a thin wrapper around reading and writing small text
files under ``/sys``. OS-level failures are converted into the typed
errors from ``pifand.base.errors`` at this boundary.
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Iterable

from pydantic import Field

from pifand.base.config import ChannelConfig
from pifand.base.device import Actuator, Governor, Sensor, SensorSource
from pifand.base.errors import ActuatorError, SensorError, SensorFailure

logger = logging.getLogger(__name__)

_MILLIDEGREES = re.compile(r"^-?[0-9]+$")


def _write_attr(path: Path, value: Any) -> None:
    """Write one sysfs attribute, raising ActuatorError on failure."""
    try:
        path.write_text(f"{value}\n")
    except OSError as e:
        raise ActuatorError(f"Failed to write {value} to {path}: {e}") from e


def millidegrees_to_celsius(raw: int) -> int:
    """Convert millidegrees to whole degrees, truncating toward zero.

    59999 becomes 59, not 60; -1500 becomes -1, not -2. Threshold
    comparisons are made on the truncated value.
    """
    degrees = abs(raw) // 1000
    return -degrees if raw < 0 else degrees


def matches_sensor_name(name: str, patterns: Iterable[str]) -> bool:
    """Return True if an hwmon device name matches any pattern."""
    return any(re.search(pattern, name) for pattern in patterns)


class HwmonSensor(Sensor):
    """Temperature input of one hwmon device (``temp1_input``)."""

    path: Path = Field(description="Path of the temp*_input file")

    def __init__(self, **data: Any) -> None:
        super().__init__(unique_id=str(data.get("path")), **data)

    def read(self) -> int:
        """Read the input and convert it to whole degrees Celsius."""
        try:
            raw = self.path.read_text().strip()
        except OSError as e:
            raise SensorError(
                SensorFailure.UNREADABLE, f"Cannot read {self.path}: {e}"
            ) from e
        except ValueError as e:
            raise SensorError(
                SensorFailure.NOT_NUMERIC,
                f"Undecodable temperature value from {self.path}: {e}",
            ) from e
        if not _MILLIDEGREES.match(raw):
            raise SensorError(
                SensorFailure.NOT_NUMERIC,
                f"Invalid temperature value {raw!r} from {self.path}",
            )
        return millidegrees_to_celsius(int(raw))

    def access_problems(self) -> list[str]:
        """Report the input file missing or unreadable."""
        if not os.access(self.path, os.R_OK):
            return [f"Sensor not readable: {self.path}"]
        return []


class HwmonSensorSource(SensorSource):
    """Finds temperature inputs under the hwmon class directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def discover(self, channel: ChannelConfig) -> HwmonSensor | None:
        """Return the first hwmon device whose name matches the channel.

        Devices are scanned fresh on every call; hwmon numbering can
        change between boots.

        Args:
            channel: Channel whose ``sensor_patterns`` select the device

        Returns:
            Sensor for the device's ``temp1_input``, or None if no device
            matches

        """
        for hwmon in sorted(self.root.glob("hwmon*")):
            name_file = hwmon / "name"
            try:
                name = name_file.read_text().strip()
            except (OSError, ValueError):
                continue
            if not matches_sensor_name(name, channel.sensor_patterns):
                continue
            temp_input = hwmon / "temp1_input"
            if temp_input.is_file():
                logger.debug(f"Matched {channel.name} sensor {name} at {hwmon}")
                return HwmonSensor(name=f"{channel.name}_{name}", path=temp_input)
        return None


class CoolingDeviceActuator(Actuator):
    """Stepped fan driven through a thermal cooling device's ``cur_state``."""

    path: Path = Field(description="Cooling device directory")

    def __init__(self, **data: Any) -> None:
        super().__init__(unique_id=str(data.get("path")), **data)

    @property
    def state_path(self) -> Path:
        return self.path / "cur_state"

    def access_problems(self) -> list[str]:
        if not self.path.is_dir():
            return [f"Cooling device not found: {self.path}"]
        if not os.access(self.state_path, os.W_OK):
            return [f"No write permission to {self.state_path}"]
        return []

    def initialize(self) -> None:
        """Verify the cooling device exists and accepts writes."""
        problems = self.access_problems()
        if problems:
            raise ActuatorError("; ".join(problems))
        logger.info(f"Cooling device verified: {self.path}")

    def set_level(self, level: int) -> None:
        _write_attr(self.state_path, level)
        logger.debug(f"{self.name} state set to {level}")


class PwmActuator(Actuator):
    """Fan driven by a sysfs PWM channel's duty cycle.

    The channel is exported on ``initialize()`` and unexported on
    ``release()``.
    """

    chip: Path = Field(description="PWM chip directory (pwmchipN)")
    channel: int = Field(ge=0, description="PWM channel on the chip")
    period: int = Field(gt=0, description="PWM period in nanoseconds")
    initial_duty: int = Field(
        ge=0, description="Duty cycle written before output is enabled"
    )
    settle_s: float = Field(
        default=0.5, ge=0, description="Wait for sysfs to settle"
    )

    def __init__(self, **data: Any) -> None:
        super().__init__(
            unique_id=f"{data.get('chip')}/pwm{data.get('channel')}", **data
        )

    @property
    def pwm_path(self) -> Path:
        return self.chip / f"pwm{self.channel}"

    @property
    def duty_path(self) -> Path:
        return self.pwm_path / "duty_cycle"

    def access_problems(self) -> list[str]:
        if self.pwm_path.is_dir():
            if not os.access(self.duty_path, os.W_OK):
                return [f"No write permission to {self.duty_path}"]
            return []
        if not self.chip.is_dir():
            return [f"PWM chip not found: {self.chip}"]
        if not os.access(self.chip / "export", os.W_OK):
            return [f"No write permission to {self.chip / 'export'}"]
        return []

    def is_writable(self) -> bool:
        return os.access(self.duty_path, os.W_OK)

    def initialize(self) -> None:
        """Export and configure the PWM channel.

        The kernel rejects a duty cycle longer than the period, in either
        order of writing. Output is disabled and the duty cycle zeroed
        before the period is set, so a duty left behind by an earlier
        run cannot block the new period. Output is only enabled once
        the initial duty is in place.
        """
        if self.initial_duty > self.period:
            raise ActuatorError(
                f"Initial duty {self.initial_duty} exceeds period {self.period}"
            )

        if self.pwm_path.is_dir():
            logger.info("PWM channel already exported, reusing existing")
        else:
            _write_attr(self.chip / "export", self.channel)

        enable = self.pwm_path / "enable"
        if enable.exists():
            try:
                _write_attr(enable, 0)
            except ActuatorError as e:
                logger.warning(f"Could not disable PWM before setup: {e}")
        time.sleep(self.settle_s)

        if not self.pwm_path.is_dir():
            raise ActuatorError(
                f"PWM path does not exist after export: {self.pwm_path}"
            )

        _write_attr(self.duty_path, 0)
        _write_attr(self.pwm_path / "period", self.period)
        _write_attr(self.duty_path, self.initial_duty)
        _write_attr(enable, 1)
        logger.info(
            f"PWM initialized (period: {self.period}, "
            f"initial duty: {self.initial_duty})"
        )

    def set_level(self, level: int) -> None:
        if not 0 <= level <= self.period:
            raise ActuatorError(
                f"Duty {level} outside 0..{self.period} for {self.name}"
            )
        _write_attr(self.duty_path, level)
        logger.debug(f"{self.name} duty set to {level}")

    def release(self) -> None:
        """Disable output and unexport the channel."""
        if not self.pwm_path.is_dir():
            return
        _write_attr(self.pwm_path / "enable", 0)
        _write_attr(self.chip / "unexport", self.channel)
        logger.info(f"PWM channel {self.channel} released")


class ThermalGovernor(Governor):
    """Kernel thermal zone policy switched through its ``mode`` file."""

    path: Path = Field(description="Thermal zone directory")

    def __init__(self, **data: Any) -> None:
        super().__init__(unique_id=str(data.get("path")), **data)

    @property
    def mode_path(self) -> Path:
        return self.path / "mode"

    def access_problems(self) -> list[str]:
        if not self.mode_path.is_file():
            return [f"Thermal zone mode file not found: {self.mode_path}"]
        if not os.access(self.mode_path, os.W_OK):
            return [f"No write permission to {self.mode_path}"]
        return []

    def enable(self) -> None:
        _write_attr(self.mode_path, "enabled")
        logger.info("Automatic thermal control re-enabled")

    def disable(self) -> None:
        _write_attr(self.mode_path, "disabled")
        logger.info("Automatic thermal control disabled")
