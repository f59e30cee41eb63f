"""Tests for device identity derivation."""

from pathlib import Path

import pytest

from stampprint.identity import get_cpu_serial, get_device_serial, get_mac_address

CPUINFO = """\
processor\t: 0
model name\t: ARMv7 Processor rev 4 (v7l)
Hardware\t: BCM2835
Serial\t\t: 00000000abc12345
Model\t\t: Raspberry Pi 3 Model B Rev 1.2
"""


@pytest.fixture
def net_dir(tmp_path: Path) -> Path:
    """Fake /sys/class/net with loopback, a null and a real interface."""
    root = tmp_path / "net"
    for name, mac in [("lo", "00:00:00:00:00:00"), ("dummy0", "00:00:00:00:00:00"), ("eth0", "b8:27:eb:11:22:33")]:
        (root / name).mkdir(parents=True)
        (root / name / "address").write_text(mac + "\n")
    return root


@pytest.fixture
def cpuinfo(tmp_path: Path) -> Path:
    path = tmp_path / "cpuinfo"
    path.write_text(CPUINFO)
    return path


class TestIdentity:
    """Tests for serial derivation."""

    def test_mac_skips_loopback_and_null(self, net_dir):
        assert get_mac_address(net_dir) == "b8:27:eb:11:22:33"

    def test_missing_net_dir(self, tmp_path):
        assert get_mac_address(tmp_path / "absent") == ""

    def test_cpu_serial(self, cpuinfo):
        assert get_cpu_serial(cpuinfo) == "00000000abc12345"

    def test_cpu_without_serial(self, tmp_path):
        path = tmp_path / "cpuinfo"
        path.write_text("processor\t: 0\n")
        assert get_cpu_serial(path) == ""

    def test_device_serial_concatenates(self, net_dir, cpuinfo):
        assert get_device_serial(net_dir, cpuinfo) == "b8:27:eb:11:22:3300000000abc12345"
