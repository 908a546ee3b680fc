"""Hysteresis fan control daemon for CPU and NVMe cooling."""

# Core classes
from .base import (
    Actuator,
    ActuatorError,
    CancellationToken,
    Channel,
    ChannelConfig,
    ChannelState,
    ConfigurationError,
    Controller,
    DaemonConfig,
    DaemonMode,
    Device,
    Entity,
    FastRunner,
    Governor,
    PifandError,
    Process,
    Runner,
    Sensor,
    SensorError,
    SensorFailure,
    SensorSource,
    StandardRunner,
    StartupError,
    TickReport,
    TimeSource,
    load_config,
)

# Controllers
from .controllers import (
    ControlLoop,
    FailureEscalation,
    FixedLevelController,
    RunawayGuard,
    next_tier,
)
from .lifecycle import LifecycleManager, LifecyclePhase

__all__ = [
    "Actuator",
    "ActuatorError",
    "CancellationToken",
    "Channel",
    "ChannelConfig",
    "ChannelState",
    "ConfigurationError",
    "ControlLoop",
    "Controller",
    "DaemonConfig",
    "DaemonMode",
    "Device",
    "Entity",
    "FailureEscalation",
    "FastRunner",
    "FixedLevelController",
    "Governor",
    "LifecycleManager",
    "LifecyclePhase",
    "PifandError",
    "Process",
    "Runner",
    "RunawayGuard",
    "Sensor",
    "SensorError",
    "SensorFailure",
    "SensorSource",
    "StandardRunner",
    "StartupError",
    "TickReport",
    "TimeSource",
    "load_config",
    "next_tier",
]
