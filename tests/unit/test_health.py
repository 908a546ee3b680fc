"""Tests for the supervisor health check."""

from pifand.health import check_health


class TestCheckHealth:
    """Test liveness probing of PWM and sensors."""

    def test_healthy(self, sysfs_config):
        """Test a complete tree reports no problems."""
        assert check_health(sysfs_config) == []

    def test_pwm_lost(self, sysfs, sysfs_config):
        """Test a vanished duty cycle attribute is reported."""
        duty = sysfs / "class/pwm/pwmchip0/pwm2/duty_cycle"
        duty.unlink()

        assert check_health(sysfs_config) == [
            f"Lost sysfs write access to PWM: {duty}"
        ]

    def test_no_sensors(self, sysfs, sysfs_config):
        """Test losing every temperature input is reported."""
        for path in (sysfs / "class/hwmon").glob("hwmon*/temp1_input"):
            path.unlink()

        assert check_health(sysfs_config) == [
            "No temperature sensors accessible"
        ]

    def test_one_sensor_is_enough(self, sysfs, sysfs_config):
        """Test a single readable input keeps the daemon healthy."""
        (sysfs / "class/hwmon/hwmon2/temp1_input").unlink()

        assert check_health(sysfs_config) == []
