"""Sending MIDI control-change messages and keeping the list of output ports."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Sequence

import mido

from .config import find_root_path

log = logging.getLogger(__name__)

MAX_CHANNEL = 15
MAX_DATA = 127


class MidiError(Exception):
    """Raised when MIDI data is invalid or no output can be used."""


@dataclass(frozen=True)
class MidiPort:
    """A MIDI output port split into a name and its port address."""

    name: str
    port_path: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "port_path": self.port_path}


def default_midi_file() -> Path:
    """Location of the MIDI port list below the installation root."""
    return find_root_path() / "midiUtility" / "midi_ports.json"


def _in_range(value: int) -> bool:
    return 0 <= value <= MAX_DATA


def control_change_messages(
    matrix: Sequence[Sequence[int]], channel: int
) -> list[mido.Message]:
    """Build control-change messages from ``[cc_numbers, cc_values]``.

    Pairs whose number or value lies outside 0-127 are skipped with a warning.
    """
    if len(matrix) != 2:
        raise MidiError("matrix must have exactly 2 rows (CC numbers and values)")
    numbers, values = matrix
    if len(numbers) != len(values):
        raise MidiError("CC numbers and values rows must have the same length")
    if not 0 <= channel <= MAX_CHANNEL:
        raise MidiError(f"MIDI channel must be 0-15, got {channel}")

    messages = []
    for number, value in zip(numbers, values):
        if not _in_range(number):
            log.warning("CC number %d is out of range (0-127), skipping", number)
            continue
        if not _in_range(value):
            log.warning("CC value %d is out of range (0-127), skipping", value)
            continue
        messages.append(
            mido.Message("control_change", channel=channel, control=number, value=value)
        )
    return messages


def send_cc(
    send: Callable[[mido.Message], object],
    matrix: Sequence[Sequence[int]],
    channel: int,
) -> list[mido.Message]:
    """Pass each control-change message to ``send``; return those that went out.

    A message whose sending fails is logged and skipped.
    """
    sent = []
    for message in control_change_messages(matrix, channel):
        try:
            send(message)
        except (OSError, RuntimeError, ValueError) as exc:
            log.error(
                "Error sending CC %d with value %d: %s", message.control, message.value, exc
            )
            continue
        log.info("Sent CC %d = %d on channel %d", message.control, message.value, channel + 1)
        sent.append(message)
    return sent


def _output_names() -> list[str]:
    try:
        return list(mido.get_output_names())
    except (ImportError, OSError, RuntimeError) as exc:
        log.warning("MIDI backend unavailable: %s", exc)
        return []


def output_midi_cc(matrix: Sequence[Sequence[int]], channel: int) -> list[mido.Message]:
    """Send control-change messages to the first available MIDI output port."""
    control_change_messages(matrix, channel)
    names = _output_names()
    if not names:
        raise MidiError("no MIDI output ports available")

    name = names[0]
    try:
        port = mido.open_output(name)
    except (ImportError, OSError, RuntimeError) as exc:
        raise MidiError(f"failed to open MIDI output: {exc}") from exc

    log.info("Sending MIDI CC messages to: %s", name)
    with port:
        return send_cc(port.send, matrix, channel)


def format_port_list(names: Iterable[str]) -> str:
    """Number the port names from 1, one ``"<n>: <name>"`` per line."""
    return "".join(f"{number}: {name}\n" for number, name in enumerate(names, start=1))


def parse_midi_ports(text: str) -> list[MidiPort]:
    """Split each ``"<n>: <name> <address>"`` line into a port.

    Lines without ``": "`` or without a space in the port part are ignored.
    """
    ports = []
    for line in text.strip().split("\n"):
        _, sep, info = line.partition(": ")
        if not sep:
            continue
        name, space, address = info.rpartition(" ")
        if not space:
            continue
        ports.append(MidiPort(name=name, port_path=address))
    return ports


def write_midi_file(ports: Iterable[MidiPort], path: str | Path) -> None:
    """Store the ports under ``available_midi_ports``, keeping other keys."""
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

    data["available_midi_ports"] = [port.to_dict() for port in ports]
    path.write_text(
        json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8"
    )


def list_midi_ports(path: str | Path | None = None) -> Path:
    """Write the current MIDI output ports to the list file and return its path."""
    target = Path(path) if path is not None else default_midi_file()
    names = _output_names()
    if names:
        log.info("Found %d MIDI output ports", len(names))
    else:
        log.info("No MIDI output ports available")
    write_midi_file(parse_midi_ports(format_port_list(names)), target)
    return target