"""Hardware environments the daemon can run against."""

from .sysfs import (
    CoolingDeviceActuator,
    HwmonSensor,
    HwmonSensorSource,
    PwmActuator,
    ThermalGovernor,
    matches_sensor_name,
    millidegrees_to_celsius,
)

__all__ = [
    "CoolingDeviceActuator",
    "HwmonSensor",
    "HwmonSensorSource",
    "PwmActuator",
    "ThermalGovernor",
    "matches_sensor_name",
    "millidegrees_to_celsius",
]
