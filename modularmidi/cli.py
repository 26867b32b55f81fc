"""Command-line front end for listing and selecting devices via the backend."""

from __future__ import annotations

import json
import re
import sys
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .config import CONF_FILE_NAME, ConfigError, find_root_path, load_http_config

_INDEX_RE = re.compile(r"[+-]?\d+")


class CliError(Exception):
    """Raised when a command cannot be completed."""


@dataclass(frozen=True)
class DeviceEntry:
    """A device as listed in a device file."""

    name: str
    device_path: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "device_path": self.device_path}


def _parse_device_file(text: str, list_key: str, selected_key: str) -> tuple[list[DeviceEntry], str]:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise CliError(f"failed to parse JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise CliError("failed to parse JSON: expected an object")

    raw_devices = data.get(list_key) or []
    selected = data.get(selected_key) or ""
    if not isinstance(raw_devices, list) or not isinstance(selected, str):
        raise CliError("failed to parse JSON: unexpected field types")

    devices = []
    for item in raw_devices:
        if not isinstance(item, dict):
            raise CliError("failed to parse JSON: device entry is not an object")
        name = item.get("name") or ""
        path = item.get("device_path") or ""
        if not isinstance(name, str) or not isinstance(path, str):
            raise CliError("failed to parse JSON: device fields must be strings")
        devices.append(DeviceEntry(name=name, device_path=path))
    return devices, selected


@dataclass
class UsbDeviceData:
    """Contents of the USB device file."""

    available_usb_devices: list[DeviceEntry] = field(default_factory=list)
    selected_usb_device: str = ""

    @classmethod
    def from_json(cls, text: str) -> "UsbDeviceData":
        devices, selected = _parse_device_file(
            text, "available_usb_devices", "selected_usb_device"
        )
        return cls(devices, selected)

    def to_json(self) -> str:
        return json.dumps(
            {
                "available_usb_devices": [d.to_dict() for d in self.available_usb_devices],
                "selected_usb_device": self.selected_usb_device,
            },
            indent=2,
            ensure_ascii=False,
        )


@dataclass
class MidiDeviceData:
    """Contents of the MIDI device file."""

    available_midi_devices: list[DeviceEntry] = field(default_factory=list)
    selected_midi_device: str = ""

    @classmethod
    def from_json(cls, text: str) -> "MidiDeviceData":
        devices, selected = _parse_device_file(
            text, "available_midi_devices", "selected_midi_device"
        )
        return cls(devices, selected)

    def to_json(self) -> str:
        return json.dumps(
            {
                "available_midi_devices": [d.to_dict() for d in self.available_midi_devices],
                "selected_midi_device": self.selected_midi_device,
            },
            indent=2,
            ensure_ascii=False,
        )


@dataclass(frozen=True)
class BackendClient:
    """Talks to the backend API at ``base_url``."""

    base_url: str
    timeout: float = 30.0

    def _get(self, endpoint: str) -> tuple[int, bytes]:
        try:
            with urllib.request.urlopen(self.base_url + endpoint, timeout=self.timeout) as resp:
                return resp.status, resp.read()
        except urllib.error.HTTPError as exc:
            return exc.code, exc.read()
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise CliError(f"failed to call API: {exc}") from exc

    def fetch_file_path(self, endpoint: str) -> Path:
        """Call ``endpoint`` and return the file path it answers with."""
        status, body = self._get(endpoint)
        if status != 200:
            raise CliError(f"API returned status code: {status}")
        text = body.decode("utf-8", errors="replace").strip()
        if not text:
            raise CliError("API returned empty file path")
        return Path(text)

    def trigger(self, endpoint: str) -> int:
        """Call ``endpoint`` and return its HTTP status code."""
        status, _ = self._get(endpoint)
        return status


def _read_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CliError(f"failed to read file {path}: {exc}") from exc


def _write_file(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise CliError(f"Failed to write to file {path}: {exc}") from exc


def choose_device(devices: Sequence[DeviceEntry], index_text: str) -> DeviceEntry:
    """Pick a device by its 1-based index given as text."""
    if not _INDEX_RE.fullmatch(index_text):
        raise CliError(f"Invalid index '{index_text}'. Please provide a valid number.")
    index = int(index_text)
    if not 1 <= index <= len(devices):
        raise CliError(
            f"Index {index} is out of range. Available devices: 1-{len(devices)}"
        )
    return devices[index - 1]


def _usb_data(client: BackendClient) -> tuple[UsbDeviceData, Path]:
    path = client.fetch_file_path("/usbPortListFile")
    return UsbDeviceData.from_json(_read_file(path)), path


def _midi_data(client: BackendClient) -> tuple[MidiDeviceData, Path]:
    path = client.fetch_file_path("/listMidiPorts")
    return MidiDeviceData.from_json(_read_file(path)), path


def list_usb_devices(client: BackendClient) -> str:
    """Text listing of the USB devices known to the backend."""
    data, _ = _usb_data(client)
    lines = ["Available USB Devices:", "====================="]
    if not data.available_usb_devices:
        lines.append("No USB devices found.")
        return "\n".join(lines) + "\n"
    for number, device in enumerate(data.available_usb_devices, start=1):
        lines += [f"[{number}] {device.name}", f"    Device Path: {device.device_path}", ""]
    if data.selected_usb_device:
        lines.append(f"Currently selected USB device path: {data.selected_usb_device}")
    else:
        lines.append("No USB device currently selected.")
    return "\n".join(lines) + "\n"


def select_usb_device(client: BackendClient, index_text: str) -> tuple[DeviceEntry, Path]:
    """Mark a USB device as selected in the backend's file."""
    data, path = _usb_data(client)
    device = choose_device(data.available_usb_devices, index_text)
    data.selected_usb_device = device.device_path
    _write_file(path, data.to_json())
    return device, path


def select_midi_device(client: BackendClient, index_text: str) -> tuple[DeviceEntry, Path]:
    """Mark a MIDI device as selected in the backend's file."""
    data, path = _midi_data(client)
    device = choose_device(data.available_midi_devices, index_text)
    data.selected_midi_device = device.device_path
    _write_file(path, data.to_json())
    return device, path


def usage() -> str:
    """The help text."""
    return (
        "USB Device Manager CLI\n"
        "\n"
        "Usage:\n"
        "  usb-manager list           - List all available USB devices\n"
        "  usb-manager select <index> - Select a USB device by index\n"
        "  usb-manager help           - Show this help message\n"
        "\n"
        "Examples:\n"
        "  usb-manager list\n"
        "  usb-manager select 3\n"
    )


def _client() -> BackendClient:
    config = load_http_config(find_root_path() / "backend" / CONF_FILE_NAME)
    return BackendClient(config.backend_api_location())


def _selection_report(kind: str, device: DeviceEntry, path: Path) -> str:
    return (
        f"Successfully selected {kind} device:\n"
        f"  Name: {device.name}\n"
        f"  Device Path: {device.device_path}\n"
        f"  Saved to: {path}\n"
    )


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print(usage(), end="")
        return 1

    command = args[0]
    if command == "help":
        print(usage(), end="")
        return 0
    if command not in {"list-USB", "select-USB", "select-MIDI", "test-midi", "list-midi"}:
        print(f"Unknown command: {command}")
        print(usage(), end="")
        return 1
    if command == "select-USB" and len(args) < 2:
        print("Error: Please provide a USB device index to select")
        print("Usage: usb-manager select <index>")
        return 1
    if command == "select-MIDI" and len(args) < 2:
        print("Error: Please provide a MIDI device index to select")
        print("Usage: usb-manager select-MIDI <index>")
        return 1

    try:
        client = _client()
        if command == "list-USB":
            print(list_usb_devices(client), end="")
        elif command == "select-USB":
            device, path = select_usb_device(client, args[1])
            print(_selection_report("USB", device, path), end="")
        elif command == "select-MIDI":
            device, path = select_midi_device(client, args[1])
            print(_selection_report("MIDI", device, path), end="")
        else:
            print(f"Backend Loc: {client.base_url}")
            endpoint = "/testMidiOutput" if command == "test-midi" else "/listMidiPorts"
            status = client.trigger(endpoint)
            if status != 200:
                print(f"API returned status code: {status}")
            if command == "test-midi":
                print("MIDI output test triggered.")
            else:
                print("MIDI ports listed.")
    except (CliError, ConfigError) as exc:
        print(f"Error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())