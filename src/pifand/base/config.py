"""Configuration models for the fan control daemon.

Configuration is validated once when it is loaded. The lifecycle manager
re-checks the same invariants at startup through
``DaemonConfig.check_invariants()`` so a configuration that bypassed
validation (for example one built with ``model_construct``) still cannot
reach the hardware.
"""

from pathlib import Path

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from .errors import ConfigurationError


class ChannelConfig(BaseModel):
    """Threshold table and safety levels for one cooling channel.

    A channel with N thresholds has N + 1 tiers. Tier 0 is below every
    threshold; tier k (k >= 1) is reached when the temperature is at or
    above ``thresholds[k - 1]``. ``levels[k]`` is the raw value written to
    the actuator for tier k: a cooling state index for a stepped device,
    a duty cycle in nanoseconds for a PWM device.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Channel identifier")
    label: str = Field(
        min_length=1, description="Label used in state report lines"
    )
    sensor_patterns: list[str] = Field(
        default_factory=list,
        description="Regular expressions matched against hwmon device names",
    )
    thresholds: list[int] = Field(
        min_length=1,
        description="Strictly ascending temperatures (C) promoting each tier",
    )
    levels: list[int] = Field(
        description="Actuator level for each tier, lowest tier first",
    )
    critical_temp: int = Field(
        description="Temperature (C) at or above which runaway is declared",
    )
    emergency_level: int = Field(
        description="Actuator level forced during emergencies",
    )
    safe_level: int = Field(
        description="Actuator level left behind when the daemon stops",
    )
    startup_level: int = Field(
        description="Actuator level held during the startup test",
    )
    required: bool = Field(
        default=True,
        description="Whether a missing sensor is a fatal startup error",
    )

    @property
    def tier_count(self) -> int:
        """Return the number of tiers, including tier 0."""
        return len(self.levels)

    @property
    def top_tier(self) -> int:
        """Return the highest tier index."""
        return len(self.levels) - 1

    @property
    def default_tier(self) -> int:
        """Return the conservative tier used when the loop starts."""
        return min(1, self.top_tier)

    @property
    def off_level(self) -> int:
        """Return the lowest defined level."""
        return self.levels[0]

    def problems(self) -> list[str]:
        """Return every invariant this channel violates."""
        found = []
        pairs = zip(self.thresholds, self.thresholds[1:])
        if any(lower >= upper for lower, upper in pairs):
            found.append(
                f"{self.name}: thresholds must be strictly ascending, "
                f"got {self.thresholds}"
            )
        if len(self.levels) != len(self.thresholds) + 1:
            found.append(
                f"{self.name}: expected {len(self.thresholds) + 1} levels "
                f"for {len(self.thresholds)} thresholds, "
                f"got {len(self.levels)}"
            )
        steps = zip(self.levels, self.levels[1:])
        if any(lower >= upper for lower, upper in steps):
            found.append(
                f"{self.name}: levels must be strictly ascending, "
                f"got {self.levels}"
            )
        if self.levels and self.emergency_level < max(self.levels):
            found.append(
                f"{self.name}: emergency level {self.emergency_level} is "
                f"below the highest normal level {max(self.levels)}"
            )
        if self.levels and self.safe_level <= self.levels[0]:
            found.append(
                f"{self.name}: safe level {self.safe_level} must be above "
                f"the off level {self.levels[0]}"
            )
        if self.levels and not (
            self.levels[0] <= self.startup_level <= self.emergency_level
        ):
            found.append(
                f"{self.name}: startup level {self.startup_level} must lie "
                f"within {self.levels[0]}..{self.emergency_level}"
            )
        return found

    @model_validator(mode="after")
    def _validate_tables(self) -> "ChannelConfig":
        problems = self.problems()
        if problems:
            raise ValueError("; ".join(problems))
        return self


class HardwareConfig(BaseModel):
    """Locations of the sysfs files the daemon reads and writes."""

    model_config = ConfigDict(frozen=True)

    hwmon_root: Path = Field(
        default=Path("/sys/class/hwmon"),
        description="Directory holding hwmon* temperature devices",
    )
    pwm_chip: Path = Field(
        default=Path("/sys/class/pwm/pwmchip0"),
        description="PWM chip driving the NVMe fan",
    )
    pwm_channel: int = Field(
        default=2, ge=0, description="PWM channel number on the chip"
    )
    pwm_period: int = Field(
        default=40_000,  # 25 kHz
        gt=0,
        description="PWM period in nanoseconds",
    )
    cooling_device: Path = Field(
        default=Path("/sys/class/thermal/cooling_device0"),
        description="Kernel cooling device driving the CPU fan",
    )
    thermal_zone: Path = Field(
        default=Path("/sys/class/thermal/thermal_zone0"),
        description="Thermal zone whose kernel governor is suspended",
    )
    settle_s: float = Field(
        default=0.5,
        ge=0,
        description="Seconds to wait for sysfs after PWM export/disable",
    )
    require_root: bool = Field(
        default=True,
        description="Refuse to start unless running as root",
    )


class LoggingConfig(BaseModel):
    """Where log output goes and how long it is kept."""

    model_config = ConfigDict(frozen=True)

    log_dir: Path | None = Field(
        default=None,
        description="Directory for daily log files; console only if unset",
    )
    retention_days: int = Field(
        default=7, ge=0, description="Number of daily log files to keep"
    )


def _default_primary() -> ChannelConfig:
    return ChannelConfig(
        name="cpu",
        label="CPU",
        sensor_patterns=["cpu_thermal", "thermal_zone"],
        thresholds=[50, 60, 70, 80],
        levels=[0, 1, 2, 3, 4],
        critical_temp=90,
        emergency_level=4,
        safe_level=2,
        startup_level=3,
        required=True,
    )


def _default_secondary() -> ChannelConfig:
    return ChannelConfig(
        name="nvme",
        label="NVMe",
        sensor_patterns=["nvme"],
        thresholds=[40, 50, 60, 70],
        levels=[0, 8_000, 16_000, 24_000, 32_000],
        critical_temp=85,
        emergency_level=32_000,
        safe_level=16_000,
        startup_level=32_000,
        required=False,
    )


class DaemonConfig(BaseModel):
    """Complete configuration for one daemon run."""

    model_config = ConfigDict(frozen=True)

    primary: ChannelConfig = Field(
        default_factory=_default_primary,
        description="Stepped cooling device channel (CPU fan)",
    )
    secondary: ChannelConfig = Field(
        default_factory=_default_secondary,
        description="PWM duty cycle channel (NVMe fan)",
    )
    hysteresis: int = Field(
        default=3,
        ge=0,
        description="Degrees below a tier's threshold required to descend",
    )
    loop_interval: float = Field(
        default=5.0, gt=0, description="Seconds between control ticks"
    )
    max_sensor_failures: int = Field(
        default=3,
        ge=1,
        description="Consecutive read failures before emergency cooling",
    )
    startup_test_enabled: bool = Field(
        default=True, description="Spin fans up briefly at startup"
    )
    startup_test_duration: float = Field(
        default=30.0, ge=0, description="Seconds the startup test lasts"
    )
    debug: bool = Field(default=False, description="Enable debug logging")
    hardware: HardwareConfig = Field(default_factory=HardwareConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def loop_interval_ns(self) -> int:
        """Return the tick interval in nanoseconds."""
        return int(self.loop_interval * 1_000_000_000)

    def problems(self) -> list[str]:
        """Return every invariant the configuration violates."""
        found = self.primary.problems() + self.secondary.problems()
        if self.hysteresis < 0:
            found.append(f"hysteresis must be >= 0, got {self.hysteresis}")
        period = self.hardware.pwm_period
        duties = list(self.secondary.levels) + [
            self.secondary.emergency_level,
            self.secondary.safe_level,
            self.secondary.startup_level,
        ]
        if any(duty < 0 or duty > period for duty in duties):
            found.append(
                f"{self.secondary.name}: duty levels must lie within "
                f"0..{period}"
            )
        return found

    def check_invariants(self) -> None:
        """Raise ConfigurationError if any invariant is violated."""
        problems = self.problems()
        if problems:
            raise ConfigurationError("; ".join(problems))

    @model_validator(mode="after")
    def _validate_duty_range(self) -> "DaemonConfig":
        problems = self.problems()
        if problems:
            raise ValueError("; ".join(problems))
        return self


def load_config(path: Path | None = None) -> DaemonConfig:
    """Load daemon configuration from a JSON file.

    Args:
        path: JSON file to read. ``None`` returns the built-in defaults.

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the file cannot be read or fails validation

    """
    if path is None:
        return DaemonConfig()
    try:
        text = Path(path).read_text()
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    try:
        return DaemonConfig.model_validate_json(text)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration {path}: {e}") from e
