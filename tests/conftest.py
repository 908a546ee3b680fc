from pathlib import Path

import pytest

from pifand import DaemonConfig
from pifand.base.config import HardwareConfig


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


@pytest.fixture
def sysfs(tmp_path: Path) -> Path:
    """Builds a fake Raspberry Pi 5 sysfs tree under tmp_path.

    hwmon0 is the CPU, hwmon1 a voltage monitor without temperature
    input, hwmon2 the NVMe drive. PWM channel 2 is already exported.
    """
    root = tmp_path / "sys"
    _write(root / "class/hwmon/hwmon0/name", "cpu_thermal\n")
    _write(root / "class/hwmon/hwmon0/temp1_input", "45000\n")
    _write(root / "class/hwmon/hwmon1/name", "rpi_volt\n")
    _write(root / "class/hwmon/hwmon2/name", "nvme\n")
    _write(root / "class/hwmon/hwmon2/temp1_input", "38500\n")

    chip = root / "class/pwm/pwmchip0"
    _write(chip / "export", "")
    _write(chip / "unexport", "")
    _write(chip / "pwm2/period", "0\n")
    _write(chip / "pwm2/duty_cycle", "0\n")
    _write(chip / "pwm2/enable", "0\n")

    _write(root / "class/thermal/cooling_device0/cur_state", "0\n")
    _write(root / "class/thermal/cooling_device0/max_state", "4\n")
    _write(root / "class/thermal/thermal_zone0/mode", "enabled\n")
    return root


@pytest.fixture
def sysfs_config(sysfs: Path) -> DaemonConfig:
    """Provides a configuration pointing at the fake sysfs tree."""
    return DaemonConfig(
        loop_interval=0.001,
        startup_test_enabled=False,
        hardware=HardwareConfig(
            hwmon_root=sysfs / "class/hwmon",
            pwm_chip=sysfs / "class/pwm/pwmchip0",
            pwm_channel=2,
            cooling_device=sysfs / "class/thermal/cooling_device0",
            thermal_zone=sysfs / "class/thermal/thermal_zone0",
            settle_s=0,
            require_root=False,
        ),
    )


@pytest.fixture
def config() -> DaemonConfig:
    """Provides default thresholds with fast, root-free settings."""
    return DaemonConfig(
        loop_interval=0.001,
        startup_test_enabled=False,
        hardware=HardwareConfig(settle_s=0, require_root=False),
    )


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
