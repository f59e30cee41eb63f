"""Device identity derived from the host hardware."""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

NET_CLASS_DIR = Path("/sys/class/net")
CPUINFO_PATH = Path("/proc/cpuinfo")

_NULL_MAC = "00:00:00:00:00:00"
_SERIAL_RE = re.compile(r"Serial\s*:\s*([0-9a-fA-F]+)")


def get_mac_address(net_dir: Path = NET_CLASS_DIR) -> str:
    """Return the MAC address of the first non-loopback interface.

    Args:
        net_dir: sysfs network class directory.

    Returns:
        str: MAC address, or empty string if none could be read.
    """
    try:
        interfaces = sorted(p for p in net_dir.iterdir() if p.name != "lo")
    except OSError as e:
        logger.error(f"Error listing network interfaces: {e}")
        return ""

    for iface in interfaces:
        address_path = iface / "address"
        try:
            mac = address_path.read_text().strip()
        except OSError:
            continue
        if mac and mac != _NULL_MAC:
            return mac
    return ""


def get_cpu_serial(cpuinfo_path: Path = CPUINFO_PATH) -> str:
    """Return the board serial from /proc/cpuinfo (Raspberry Pi).

    Returns:
        str: Hex serial, or empty string if absent.
    """
    try:
        match = _SERIAL_RE.search(cpuinfo_path.read_text())
    except OSError as e:
        logger.error(f"Error reading CPU serial: {e}")
        return ""
    return match.group(1) if match else ""


def get_device_serial(
    net_dir: Path = NET_CLASS_DIR, cpuinfo_path: Path = CPUINFO_PATH
) -> str:
    """Derive the device serial: MAC address followed by the CPU serial."""
    return get_mac_address(net_dir) + get_cpu_serial(cpuinfo_path)
