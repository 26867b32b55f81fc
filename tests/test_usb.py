import json
import subprocess
from unittest import mock

import pytest

from modularmidi.usb import (
    UsbDevice,
    device_name,
    find_serial_devices,
    find_usb_devices,
    match_lsusb_name,
    parse_bus_and_device,
    parse_ioreg_product,
    parse_udev_model,
    parse_wmic_description,
    parse_wmic_ports,
    usb_port_list,
    write_usb_file,
)


def _fake_run(responses):
    """Build a subprocess.run stand-in: first fragment found in the command wins."""

    def run(args, **kwargs):
        command = " ".join(args)
        for fragment, stdout in responses.items():
            if fragment in command:
                if stdout is None:
                    return subprocess.CompletedProcess(args, 1, stdout="", stderr="")
                return subprocess.CompletedProcess(args, 0, stdout=stdout, stderr="")
        raise FileNotFoundError(args[0])

    return run


def _patch_run(responses):
    return mock.patch("modularmidi.usb.subprocess.run", side_effect=_fake_run(responses))


def _patch_glob(table):
    return mock.patch("modularmidi.usb.glob.glob", side_effect=lambda p: list(table.get(p, [])))


def test_to_dict_uses_json_field_names():
    device = UsbDevice(name="Uno", device_path="/dev/ttyACM0")
    assert device.to_dict() == {"name": "Uno", "device_path": "/dev/ttyACM0"}


def test_parse_wmic_ports():
    output = "\nNode,DeviceID\nHOST,COM3\r\nHOST,COM7\n"
    assert parse_wmic_ports(output) == ["COM3", "COM7"]


def test_parse_wmic_description_skips_header():
    output = "Node,Description\nHOST,USB Serial Device\n"
    assert parse_wmic_description(output) == "USB Serial Device"
    assert parse_wmic_description("Node,Description\n") is None


def test_parse_udev_model_first_match():
    output = "DEVNAME=/dev/ttyACM0\nID_MODEL_FROM_DATABASE=Database Name\nID_MODEL=Board\n"
    assert parse_udev_model(output) == "Database Name"
    assert parse_udev_model("DEVNAME=/dev/ttyACM0\n") is None


def test_parse_ioreg_product():
    output = '  "USB Product Name" = "Synth One"\n  "USB Product Name" = "Other"\n'
    assert parse_ioreg_product(output) == "Synth One"
    assert parse_ioreg_product("nothing here") is None


def test_parse_bus_and_device_pads_numbers():
    output = 'ATTRS{busnum}=="1"\nATTRS{devnum}=="4"\n'
    assert parse_bus_and_device(output) == ("001", "004")
    assert parse_bus_and_device('ATTRS{busnum}=="1"\n') is None


def test_match_lsusb_name():
    listing = (
        "Bus 001 Device 001: ID 1d6b:0002 Linux Foundation 2.0 root hub\n"
        "Bus 001 Device 004: ID 1234:5678 Example Maker Board\n"
    )
    assert match_lsusb_name(listing, "001", "004") == "Example Maker Board"
    assert match_lsusb_name(listing, "002", "004") is None


def test_find_serial_devices_linux_order():
    table = {
        "/dev/ttyUSB*": ["/dev/ttyUSB1", "/dev/ttyUSB0"],
        "/dev/ttyS*": ["/dev/ttyS0"],
    }
    with _patch_glob(table):
        assert find_serial_devices("linux") == ["/dev/ttyUSB0", "/dev/ttyUSB1", "/dev/ttyS0"]


def test_find_serial_devices_macos_keeps_overlapping_matches():
    table = {
        "/dev/cu.usb*": ["/dev/cu.usbmodem1"],
        "/dev/cu.usbmodem*": ["/dev/cu.usbmodem1"],
    }
    with _patch_glob(table):
        assert find_serial_devices("Darwin") == ["/dev/cu.usbmodem1", "/dev/cu.usbmodem1"]


def test_find_serial_devices_windows_wmic():
    with _patch_run({"get DeviceID": "Node,DeviceID\nHOST,COM4\n"}):
        assert find_serial_devices("windows") == ["COM4"]


def test_find_serial_devices_windows_fallback():
    with _patch_run({"DeviceID -eq 'COM3'": "present\n"}):
        assert find_serial_devices("windows") == ["COM3"]


def test_device_name_linux_udev():
    with _patch_run({"--query=property": "ID_MODEL=Board\n"}):
        assert device_name("/dev/ttyACM0", "linux") == "Board"


def test_device_name_linux_lsusb():
    responses = {
        "--query=property": "DEVNAME=/dev/ttyACM0\n",
        "--attribute-walk": 'ATTRS{busnum}=="1"\nATTRS{devnum}=="4"\n',
        "lsusb": "Bus 001 Device 004: ID 1234:5678 Example Maker Board\n",
    }
    with _patch_run(responses):
        assert device_name("/dev/ttyACM0", "linux") == "Example Maker Board"


def test_device_name_linux_falls_back_to_basename():
    with _patch_run({}):
        assert device_name("/dev/ttyUSB0", "linux") == "ttyUSB0"


def test_device_name_macos():
    with _patch_run({"ioreg": '"USB Product Name" = "Synth One"\n'}):
        assert device_name("/dev/cu.usbmodem1", "darwin") == "Synth One"
    with _patch_run({}):
        assert device_name("/dev/cu.usbmodem1", "darwin") == "cu.usbmodem1"


def test_device_name_windows_falls_back_to_port():
    with _patch_run({}):
        assert device_name("COM5", "windows") == "COM5"


def test_device_name_windows_wmic_description():
    with _patch_run({"get Description": "Node,Description\nHOST,USB Serial Device\n"}):
        assert device_name("COM5", "windows") == "USB Serial Device"


def test_find_usb_devices():
    with _patch_glob({"/dev/ttyACM*": ["/dev/ttyACM0"]}), _patch_run({}):
        assert find_usb_devices("linux") == [UsbDevice("ttyACM0", "/dev/ttyACM0")]


def test_write_usb_file_keeps_other_keys(tmp_path):
    target = tmp_path / "usbUtility" / "usb_ports.json"
    target.parent.mkdir()
    target.write_text(json.dumps({"selected_usb_device": "/dev/ttyUSB0"}))
    devices = [UsbDevice("Board", "/dev/ttyUSB0")]

    write_usb_file(devices, target)

    data = json.loads(target.read_text())
    assert data["selected_usb_device"] == "/dev/ttyUSB0"
    assert data["available_usb_devices"] == [d.to_dict() for d in devices]
    assert list(data) == sorted(data)


@pytest.mark.parametrize("existing", ["not json", "[1, 2]", "null"])
def test_write_usb_file_replaces_unusable_content(tmp_path, existing):
    target = tmp_path / "usb_ports.json"
    target.write_text(existing)
    write_usb_file([], target)
    assert json.loads(target.read_text()) == {"available_usb_devices": []}


def test_write_usb_file_creates_directories(tmp_path):
    target = tmp_path / "a" / "b" / "usb_ports.json"
    write_usb_file([UsbDevice("x", "/dev/x")], target)
    assert json.loads(target.read_text())["available_usb_devices"] == [
        {"name": "x", "device_path": "/dev/x"}
    ]


def test_usb_port_list_writes_and_returns_path(tmp_path):
    target = tmp_path / "usb_ports.json"
    with _patch_glob({"/dev/ttyUSB*": ["/dev/ttyUSB0"]}), _patch_run({}):
        result = usb_port_list(target, "linux")
    assert result == target
    data = json.loads(target.read_text())
    assert data["available_usb_devices"] == [{"name": "ttyUSB0", "device_path": "/dev/ttyUSB0"}]