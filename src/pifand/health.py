"""Liveness probe for process supervisors.

A supervisor can call ``check_health()`` (or ``pifand --health-check``)
at any time while the daemon runs. It verifies that the PWM duty cycle
still accepts writes and that at least one temperature input can still
be read.
"""

import os

from pifand.base.config import DaemonConfig


def check_health(config: DaemonConfig) -> list[str]:
    """Return liveness problems, or an empty list when healthy."""
    problems = []
    hardware = config.hardware
    duty = hardware.pwm_chip / f"pwm{hardware.pwm_channel}" / "duty_cycle"
    if not os.access(duty, os.W_OK):
        problems.append(f"Lost sysfs write access to PWM: {duty}")

    inputs = sorted(hardware.hwmon_root.glob("hwmon*/temp1_input"))
    if not any(os.access(path, os.R_OK) for path in inputs):
        problems.append("No temperature sensors accessible")
    return problems
