"""Base classes for the pifand fan control daemon."""

from pifand.base.channel import Channel
from pifand.base.config import (
    ChannelConfig,
    DaemonConfig,
    HardwareConfig,
    LoggingConfig,
    load_config,
)
from pifand.base.device import (
    Actuator,
    Device,
    Governor,
    Sensor,
    SensorSource,
)
from pifand.base.entity import Entity
from pifand.base.errors import (
    ActuatorError,
    ConfigurationError,
    PifandError,
    SensorError,
    SensorFailure,
    StartupError,
)
from pifand.base.process import Controller, Process
from pifand.base.runner import (
    CancellationToken,
    FastRunner,
    Runner,
    StandardRunner,
    TimeSource,
)
from pifand.base.state import ChannelState, DaemonMode, TickReport, derive_mode

__all__ = [
    "Actuator",
    "ActuatorError",
    "CancellationToken",
    "Channel",
    "ChannelConfig",
    "ChannelState",
    "ConfigurationError",
    "Controller",
    "DaemonConfig",
    "DaemonMode",
    "Device",
    "Entity",
    "FastRunner",
    "Governor",
    "HardwareConfig",
    "LoggingConfig",
    "PifandError",
    "Process",
    "Runner",
    "Sensor",
    "SensorError",
    "SensorFailure",
    "SensorSource",
    "StandardRunner",
    "StartupError",
    "TickReport",
    "TimeSource",
    "derive_mode",
    "load_config",
]
