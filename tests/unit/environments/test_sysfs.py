"""Tests for the sysfs sensors, actuators and governor."""

import pytest

from pifand import ActuatorError, DaemonConfig, SensorError, SensorFailure
from pifand.environments import (
    CoolingDeviceActuator,
    HwmonSensor,
    HwmonSensorSource,
    PwmActuator,
    ThermalGovernor,
    matches_sensor_name,
    millidegrees_to_celsius,
)
from pifand.environments import sysfs as sysfs_module


def _sensor(tmp_path, text):
    path = tmp_path / "temp1_input"
    path.write_text(text)
    return HwmonSensor(name="t", path=path)


class TestTemperatureConversion:
    """Test millidegree conversion."""

    @pytest.mark.parametrize(
        ("raw", "celsius"),
        [(45000, 45), (59999, 59), (60000, 60), (0, 0), (-1500, -1)],
    )
    def test_truncates_toward_zero(self, raw, celsius):
        """Test fractions are dropped, never rounded."""
        assert millidegrees_to_celsius(raw) == celsius


class TestHwmonSensor:
    """Test reading temperature inputs."""

    def test_reads_celsius(self, tmp_path):
        """Test a valid input is converted to whole degrees."""
        assert _sensor(tmp_path, "59999\n").read() == 59

    def test_negative_reading(self, tmp_path):
        """Test negative inputs are accepted."""
        assert _sensor(tmp_path, "-2500\n").read() == -2

    @pytest.mark.parametrize("text", ["", "abc\n", "45.5\n", "4 5\n"])
    def test_not_numeric(self, tmp_path, text):
        """Test malformed content raises NOT_NUMERIC."""
        with pytest.raises(SensorError) as excinfo:
            _sensor(tmp_path, text).read()
        assert excinfo.value.kind is SensorFailure.NOT_NUMERIC

    def test_undecodable_bytes(self, tmp_path):
        """Test bytes that are not valid text raise NOT_NUMERIC."""
        path = tmp_path / "temp1_input"
        path.write_bytes(b"\xff\xfe\x00")
        sensor = HwmonSensor(name="t", path=path)

        with pytest.raises(SensorError) as excinfo:
            sensor.read()
        assert excinfo.value.kind is SensorFailure.NOT_NUMERIC

    def test_unreadable(self, tmp_path):
        """Test a missing input raises UNREADABLE."""
        sensor = HwmonSensor(name="t", path=tmp_path / "gone")
        with pytest.raises(SensorError) as excinfo:
            sensor.read()
        assert excinfo.value.kind is SensorFailure.UNREADABLE
        assert sensor.access_problems()


class TestHwmonSensorSource:
    """Test sensor discovery by device name."""

    def test_pattern_matching(self):
        """Test names are matched by regular expression search."""
        assert matches_sensor_name("cpu_thermal", ["cpu_thermal"])
        assert matches_sensor_name("nvme", ["nvme"])
        assert not matches_sensor_name("rpi_volt", ["cpu_thermal", "nvme"])

    def test_discovers_both_channels(self, sysfs):
        """Test each channel finds its own hwmon device."""
        source = HwmonSensorSource(sysfs / "class/hwmon")
        config = DaemonConfig()

        cpu = source.discover(config.primary)
        nvme = source.discover(config.secondary)

        assert cpu.path == sysfs / "class/hwmon/hwmon0/temp1_input"
        assert cpu.read() == 45
        assert nvme.path == sysfs / "class/hwmon/hwmon2/temp1_input"
        assert nvme.read() == 38

    def test_missing_sensor(self, sysfs):
        """Test an absent device is reported as None."""
        (sysfs / "class/hwmon/hwmon2/temp1_input").unlink()
        source = HwmonSensorSource(sysfs / "class/hwmon")

        assert source.discover(DaemonConfig().secondary) is None

    def test_skips_devices_without_name(self, sysfs):
        """Test hwmon entries without a name file are ignored."""
        (sysfs / "class/hwmon/hwmon0/name").unlink()
        source = HwmonSensorSource(sysfs / "class/hwmon")

        assert source.discover(DaemonConfig().primary) is None

    def test_skips_undecodable_name(self, sysfs):
        """Test a garbled name file is skipped, not fatal."""
        (sysfs / "class/hwmon/hwmon0/name").write_bytes(b"\xff\xfe")
        cpu = sysfs / "class/hwmon/hwmon3"
        cpu.mkdir()
        (cpu / "name").write_text("cpu_thermal\n")
        (cpu / "temp1_input").write_text("52000\n")
        source = HwmonSensorSource(sysfs / "class/hwmon")

        sensor = source.discover(DaemonConfig().primary)

        assert sensor.path == cpu / "temp1_input"
        assert sensor.read() == 52

    def test_first_match_wins(self, sysfs):
        """Test hwmon devices are scanned in order."""
        extra = sysfs / "class/hwmon/hwmon3"
        extra.mkdir()
        (extra / "name").write_text("nvme\n")
        (extra / "temp1_input").write_text("70000\n")
        source = HwmonSensorSource(sysfs / "class/hwmon")

        sensor = source.discover(DaemonConfig().secondary)

        assert sensor.read() == 38


class TestCoolingDeviceActuator:
    """Test the stepped CPU fan."""

    def test_set_level(self, sysfs):
        """Test a level is written to cur_state."""
        path = sysfs / "class/thermal/cooling_device0"
        fan = CoolingDeviceActuator(name="cpu_fan", path=path)
        fan.initialize()

        fan.set_level(3)

        assert (path / "cur_state").read_text() == "3\n"

    def test_missing_device(self, tmp_path):
        """Test a missing cooling device fails initialization."""
        fan = CoolingDeviceActuator(name="cpu_fan", path=tmp_path / "none")

        assert fan.access_problems() == [
            f"Cooling device not found: {tmp_path / 'none'}"
        ]
        with pytest.raises(ActuatorError):
            fan.initialize()

    def test_write_failure(self, tmp_path):
        """Test an OS error on write becomes ActuatorError."""
        fan = CoolingDeviceActuator(name="cpu_fan", path=tmp_path / "none")
        with pytest.raises(ActuatorError):
            fan.set_level(1)

    def test_stable_uuid(self, sysfs):
        """Test the same device path keeps the same identity."""
        path = sysfs / "class/thermal/cooling_device0"
        first = CoolingDeviceActuator(name="a", path=path)
        second = CoolingDeviceActuator(name="b", path=path)
        assert first.uuid == second.uuid


def _pwm(chip, **overrides):
    values = {
        "name": "nvme_fan",
        "chip": chip,
        "channel": 2,
        "period": 40_000,
        "initial_duty": 8_000,
        "settle_s": 0,
    }
    values.update(overrides)
    return PwmActuator(**values)


class TestPwmActuator:
    """Test the PWM NVMe fan."""

    def test_initialize_order(self, tmp_path, monkeypatch):
        """Test export, disable, period, duty and enable happen in order."""
        chip = tmp_path / "pwmchip0"
        chip.mkdir()
        writes = []

        def fake_write(path, value):
            writes.append((path.name, value))
            if path.name == "export":
                pwm = chip / "pwm2"
                pwm.mkdir()
                for attr in ("period", "duty_cycle", "enable"):
                    (pwm / attr).write_text("0\n")

        monkeypatch.setattr(sysfs_module, "_write_attr", fake_write)

        _pwm(chip).initialize()

        assert writes == [
            ("export", 2),
            ("enable", 0),
            ("duty_cycle", 0),
            ("period", 40_000),
            ("duty_cycle", 8_000),
            ("enable", 1),
        ]

    def test_initialize_reuses_exported_channel(self, sysfs):
        """Test an already exported channel is configured in place."""
        chip = sysfs / "class/pwm/pwmchip0"

        _pwm(chip).initialize()

        assert (chip / "export").read_text() == ""
        assert (chip / "pwm2/period").read_text() == "40000\n"
        assert (chip / "pwm2/duty_cycle").read_text() == "8000\n"
        assert (chip / "pwm2/enable").read_text() == "1\n"

    def test_initialize_over_stale_duty(self, sysfs, monkeypatch):
        """Test a duty left above the new period does not block setup."""
        chip = sysfs / "class/pwm/pwmchip0"
        (chip / "pwm2/period").write_text("60000\n")
        (chip / "pwm2/duty_cycle").write_text("50000\n")
        real_write = sysfs_module._write_attr

        def kernel_write(path, value):
            duty = int((chip / "pwm2/duty_cycle").read_text())
            if path.name == "period" and value < duty:
                raise ActuatorError(f"Invalid argument: period {value}")
            real_write(path, value)

        monkeypatch.setattr(sysfs_module, "_write_attr", kernel_write)

        _pwm(chip).initialize()

        assert (chip / "pwm2/period").read_text() == "40000\n"
        assert (chip / "pwm2/duty_cycle").read_text() == "8000\n"

    def test_export_without_channel_appearing(self, tmp_path):
        """Test initialization fails if the channel never appears."""
        chip = tmp_path / "pwmchip0"
        chip.mkdir()
        (chip / "export").write_text("")

        with pytest.raises(ActuatorError, match="does not exist"):
            _pwm(chip).initialize()

    def test_initial_duty_beyond_period(self, sysfs):
        """Test an impossible initial duty is refused before writing."""
        chip = sysfs / "class/pwm/pwmchip0"
        with pytest.raises(ActuatorError):
            _pwm(chip, initial_duty=50_000).initialize()
        assert (chip / "pwm2/enable").read_text() == "0\n"

    def test_set_level(self, sysfs):
        """Test duty cycles are written to duty_cycle."""
        chip = sysfs / "class/pwm/pwmchip0"
        fan = _pwm(chip)

        fan.set_level(24_000)

        assert (chip / "pwm2/duty_cycle").read_text() == "24000\n"

    @pytest.mark.parametrize("duty", [-1, 40_001])
    def test_set_level_out_of_range(self, sysfs, duty):
        """Test duties outside 0..period are rejected unwritten."""
        chip = sysfs / "class/pwm/pwmchip0"
        with pytest.raises(ActuatorError):
            _pwm(chip).set_level(duty)
        assert (chip / "pwm2/duty_cycle").read_text() == "0\n"

    def test_release(self, sysfs):
        """Test release disables output and unexports the channel."""
        chip = sysfs / "class/pwm/pwmchip0"
        (chip / "pwm2/enable").write_text("1\n")

        _pwm(chip).release()

        assert (chip / "pwm2/enable").read_text() == "0\n"
        assert (chip / "unexport").read_text() == "2\n"

    def test_release_when_not_exported(self, tmp_path):
        """Test release without an exported channel does nothing."""
        chip = tmp_path / "pwmchip0"
        chip.mkdir()
        _pwm(chip).release()
        assert list(chip.iterdir()) == []

    def test_access_problems(self, tmp_path, sysfs):
        """Test missing chips are reported."""
        assert _pwm(sysfs / "class/pwm/pwmchip0").access_problems() == []
        assert _pwm(tmp_path / "nochip").access_problems() == [
            f"PWM chip not found: {tmp_path / 'nochip'}"
        ]


class TestThermalGovernor:
    """Test switching the kernel thermal governor."""

    def test_disable_and_enable(self, sysfs):
        """Test mode is written as disabled then enabled."""
        zone = sysfs / "class/thermal/thermal_zone0"
        governor = ThermalGovernor(name="thermal_zone", path=zone)

        governor.disable()
        assert (zone / "mode").read_text() == "disabled\n"

        governor.enable()
        assert (zone / "mode").read_text() == "enabled\n"

    def test_missing_zone(self, tmp_path):
        """Test a missing zone is a problem and a failed write."""
        governor = ThermalGovernor(name="tz", path=tmp_path / "none")

        assert governor.access_problems()
        with pytest.raises(ActuatorError):
            governor.enable()
