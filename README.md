# modularmidi

Tools for a modular MIDI controller setup: a small HTTP backend that finds
serial/USB devices and MIDI output ports and writes them to JSON files, and a
command-line client that lists the devices and records which one you chose.

## Installation

```
pip install .
```

MIDI output goes through `mido`, which needs a backend such as
`python-rtmidi` to reach real ports. Without one, the port list is empty.

## Configuration

Both commands read `modularMidi.conf`, an INI file:

```
[http]
listen_port = 8080
backend_api_port = 8080
backend_api_host = localhost
backend_api_protocol = http

[udp]
listen_port = 9000
send_port = 9001
backend_host = localhost
```

Keys are case-sensitive, values may be wrapped in double quotes, and `#` or
`;` start a comment. A missing file, a missing section or a missing key
raises `modularmidi.config.ConfigError`.

Paths are taken relative to the *root*: the parent of the directory that
holds the running program (`modularmidi.config.find_root_path()`).

- The server reads `<root>/modularMidi.conf`, or the file given with
  `--config`.
- The client reads `<root>/backend/modularMidi.conf`.

The client contacts the backend at
`backend_api_protocol://backend_api_host:listen_port`
(`HttpConfig.backend_api_location()`).

## Running the backend

```
modularmidi-server
modularmidi-server --config path/to/modularMidi.conf
```

The server listens on `listen_port` from `[http]` and answers these paths:

- `/testCall`: replies `hello Client`.
- `/usbPortListFile`: scans serial devices, writes them under
  `available_usb_devices` in `<root>/usbUtility/usb_ports.json` (other keys in
  the file are kept) and replies with that file's path.
- `/listMidiPorts`: lists the MIDI output ports, writes them under
  `available_midi_ports` (each with `name` and `port_path`) in
  `<root>/midiUtility/midi_ports.json` and replies with
  `midi ports list written to file:  <path>`.
- `/testMidiOutput`: starts the control-change wiggle tests
  (`modularmidi.wiggle.start_test`) in a background thread and replies
  `Midi Output Test Triggered`.

Only GET is served; another method on one of these paths gets
`405 Method Not Allowed`, and any other path gets `404`.

Serial devices are found with `/dev/ttyUSB*`, `/dev/ttyACM*` and `/dev/ttyS*`
on Linux and `/dev/cu.usb*` on macOS, named with `udevadm`/`lsusb` or
`ioreg`; on Windows `wmic` and PowerShell are used. A device without a name
is listed under the base name of its path.

## Using the client

```
modularmidi list-USB          # list serial/USB devices
modularmidi select-USB 3      # select device number 3
modularmidi select-MIDI 1     # select MIDI device number 1
modularmidi list-midi         # ask the backend to refresh the MIDI port list
modularmidi test-midi         # trigger the MIDI output test
modularmidi help
```

Device numbers start at 1. A selection is written back, as the device's path,
into the JSON file whose path the backend replied with: under
`selected_usb_device` for USB and `selected_midi_device` for MIDI.

`select-MIDI` takes the whole reply of `/listMidiPorts` as a file path and
expects that file to hold `available_midi_devices` entries with `name` and
`device_path`. The file the server writes uses a different shape and its
reply carries a message before the path, so with this server `select-MIDI`
reports an error.

## Library use

```python
from modularmidi.midi import output_midi_cc, parse_midi_ports
from modularmidi.wiggle import wiggle_values

output_midi_cc([[1, 7], [64, 100]], 0)   # CC numbers, then values, channel 0-15
print(wiggle_values(64, 30, 20))         # one sine period of 20 values
```

`output_midi_cc` sends to the first available output port and raises
`modularmidi.midi.MidiError` for a bad matrix or channel, or when there is no
port; pairs outside 0-127 are skipped with a warning. `send_cc` does the same
with any send function you pass it.

## What it does not do

The `[udp]` section can be read with `modularmidi.config.load_udp_config`,
but nothing in the package sends or receives UDP. Devices are found only when
asked for; there is no watching for devices being plugged in or removed.