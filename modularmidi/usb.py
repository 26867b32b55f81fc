"""Discovery of USB serial devices and the JSON file that lists them."""

from __future__ import annotations

import glob
import json
import logging
import platform
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable

from .config import find_root_path

log = logging.getLogger(__name__)

MACOS_PATTERNS = ("/dev/cu.usb*", "/dev/cu.usbmodem*", "/dev/cu.usbserial*")
LINUX_PATTERNS = ("/dev/ttyUSB*", "/dev/ttyACM*", "/dev/ttyS*")
WINDOWS_FALLBACK_PORTS = range(1, 21)

_IOREG_PRODUCT_RE = re.compile(r'"USB Product Name" = "([^"]+)"')
_BUSNUM_RE = re.compile(r'ATTRS\{busnum\}=="(\d+)"')
_DEVNUM_RE = re.compile(r'ATTRS\{devnum\}=="(\d+)"')


@dataclass(frozen=True)
class UsbDevice:
    """A serial device with a human-readable name."""

    name: str
    device_path: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "device_path": self.device_path}


def default_usb_file() -> Path:
    """Location of the USB port list below the installation root."""
    return find_root_path() / "usbUtility" / "usb_ports.json"


def _system(system: str | None) -> str:
    return (system or platform.system()).lower()


def _run(args: list[str]) -> str | None:
    """Run a command and return its standard output, or None if it failed."""
    try:
        result = subprocess.run(args, capture_output=True, text=True, check=False)
    except OSError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout


def _basename(path: str) -> str:
    return PurePath(path).name or path


# --- parsers for tool output -------------------------------------------------


def parse_wmic_ports(output: str) -> list[str]:
    """COM port names from ``wmic ... get DeviceID /format:csv`` output."""
    ports = []
    for line in output.split("\n"):
        parts = line.split(",")
        if len(parts) >= 2 and parts[1].startswith("COM"):
            ports.append(parts[1].strip())
    return ports


def parse_wmic_description(output: str) -> str | None:
    """First description from ``wmic ... get Description /format:csv`` output."""
    for line in output.split("\n"):
        parts = line.split(",")
        if len(parts) >= 2:
            value = parts[1].strip()
            if value and value != "Description":
                return value
    return None


def parse_udev_model(output: str) -> str | None:
    """Model name from ``udevadm info --query=property`` output."""
    for line in output.split("\n"):
        for prefix in ("ID_MODEL=", "ID_MODEL_FROM_DATABASE="):
            if line.startswith(prefix):
                return line[len(prefix):]
    return None


def parse_ioreg_product(output: str) -> str | None:
    """First ``USB Product Name`` found in ``ioreg -p IOUSB -l`` output."""
    match = _IOREG_PRODUCT_RE.search(output)
    return match.group(1) if match else None


def parse_bus_and_device(output: str) -> tuple[str, str] | None:
    """Bus and device numbers, zero-padded to three digits, from an attribute walk."""
    bus = _BUSNUM_RE.search(output)
    device = _DEVNUM_RE.search(output)
    if bus is None or device is None:
        return None
    return bus.group(1).rjust(3, "0"), device.group(1).rjust(3, "0")


def match_lsusb_name(output: str, bus: str, device: str) -> str | None:
    """Description of the ``lsusb`` line for the given bus and device."""
    for line in output.split("\n"):
        if f"Bus {bus}" in line and f"Device {device}" in line:
            parts = line.split()
            if len(parts) >= 6:
                return " ".join(parts[6:]) or None
    return None


# --- device discovery --------------------------------------------------------


def _glob_all(patterns: Iterable[str]) -> list[str]:
    paths = []
    for pattern in patterns:
        matches = sorted(glob.glob(pattern))
        log.debug("pattern %s found %s", pattern, matches)
        paths.extend(matches)
    return paths


def _windows_port_available(port: str) -> bool:
    output = _run(
        [
            "powershell",
            "-Command",
            f"Get-WmiObject -Class Win32_SerialPort | Where-Object {{$_.DeviceID -eq '{port}'}}",
        ]
    )
    return output is not None and bool(output.strip())


def _windows_serial_devices() -> list[str]:
    output = _run(["wmic", "path", "Win32_SerialPort", "get", "DeviceID", "/format:csv"])
    if output is None:
        candidates = (f"COM{i}" for i in WINDOWS_FALLBACK_PORTS)
        return [port for port in candidates if _windows_port_available(port)]
    return parse_wmic_ports(output)


def find_serial_devices(system: str | None = None) -> list[str]:
    """Paths of serial-like devices for the given operating system."""
    system = _system(system)
    if system == "windows":
        return _windows_serial_devices()
    if system == "darwin":
        return _glob_all(MACOS_PATTERNS)
    return _glob_all(LINUX_PATTERNS)


def _windows_device_name(port: str) -> str:
    output = _run(
        [
            "wmic",
            "path",
            "Win32_SerialPort",
            "where",
            f"DeviceID='{port}'",
            "get",
            "Description",
            "/format:csv",
        ]
    )
    if output is not None:
        name = parse_wmic_description(output)
        if name:
            return name

    queries = (
        f"Get-WmiObject -Class Win32_SerialPort | Where-Object {{$_.DeviceID -eq '{port}'}}"
        " | Select-Object -ExpandProperty Name",
        f"Get-WmiObject -Class Win32_PnPEntity | Where-Object {{$_.Name -like '*{port}*'}}"
        " | Select-Object -ExpandProperty Name",
    )
    for query in queries:
        output = _run(["powershell", "-Command", query])
        if output is not None and output.strip():
            return output.strip()
    return port


def _name_from_udev(path: str) -> str | None:
    output = _run(["udevadm", "info", f"--name={path}", "--query=property"])
    return parse_udev_model(output) if output is not None else None


def _name_from_lsusb(path: str) -> str | None:
    output = _run(["udevadm", "info", f"--name={path}", "--attribute-walk"])
    if output is None:
        return None
    numbers = parse_bus_and_device(output)
    if numbers is None:
        return None
    listing = _run(["lsusb"])
    if listing is None:
        return None
    return match_lsusb_name(listing, *numbers)


def _name_from_ioreg() -> str | None:
    output = _run(["ioreg", "-p", "IOUSB", "-l"])
    return parse_ioreg_product(output) if output is not None else None


def device_name(path: str, system: str | None = None) -> str:
    """Best available human-readable name for a device path."""
    system = _system(system)
    if system == "windows":
        return _windows_device_name(path)
    if system == "darwin":
        return _name_from_ioreg() or _basename(path)
    return _name_from_udev(path) or _name_from_lsusb(path) or _basename(path)


def find_usb_devices(system: str | None = None) -> list[UsbDevice]:
    """All serial devices, each with a name (falling back to the path's base name)."""
    devices = []
    for path in find_serial_devices(system):
        name = device_name(path, system) or _basename(path)
        log.debug("device path %s, name %s", path, name)
        devices.append(UsbDevice(name=name, device_path=path))
    return devices


def write_usb_file(devices: Iterable[UsbDevice], path: str | Path) -> None:
    """Store the device list under ``available_usb_devices``, keeping other keys."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data: dict = {}
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            loaded = None
        if isinstance(loaded, dict):
            data = loaded

    data["available_usb_devices"] = [device.to_dict() for device in devices]
    path.write_text(
        json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8"
    )


def usb_port_list(path: str | Path | None = None, system: str | None = None) -> Path:
    """Discover devices, write them to the list file and return its path."""
    target = Path(path) if path is not None else default_usb_file()
    devices = find_usb_devices(system)
    log.info("available USB devices: %s", [device.to_dict() for device in devices])
    write_usb_file(devices, target)
    return target