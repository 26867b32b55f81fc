"""Test patterns that wiggle a controller value around a centre point."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Sequence

from .midi import MidiError, output_midi_cc

log = logging.getLogger(__name__)

Sender = Callable[[Sequence[Sequence[int]], int], object]

STEP_DELAY = 0.05
SMOOTH_DELAY = 0.02


def clamp_cc(value: float) -> int:
    """Clamp to the MIDI data range 0-127 and truncate to an integer."""
    return int(min(max(value, 0.0), 127.0))


def _validate(cc_num: int, center_value: int) -> None:
    if not 0 <= cc_num <= 127:
        raise ValueError(f"CC number {cc_num} out of range (0-127)")
    if not 0 <= center_value <= 127:
        raise ValueError(f"Center value {center_value} out of range (0-127)")


def wiggle_values(center_value: int, amplitude: int, steps: int) -> list[int]:
    """One full sine period spread over ``steps`` values, first and last at 0 and 2π."""
    span = steps - 1
    return [
        clamp_cc(center_value + amplitude * math.sin(i * 2.0 * math.pi / span if span else 0.0))
        for i in range(steps)
    ]


def smooth_wiggle_value(
    center_value: int, amplitude: int, elapsed: float, frequency: float
) -> int:
    """The sine value at ``elapsed`` seconds for a wiggle of ``frequency`` Hz."""
    angle = elapsed * frequency * 2.0 * math.pi
    return clamp_cc(center_value + amplitude * math.sin(angle))


def random_wiggle_values(center_value: int, max_deviation: int, count: int) -> list[int]:
    """An irregular but repeatable mix of two sine waves around the centre."""
    return [
        clamp_cc(
            center_value
            + math.sin(i * 0.3) * max_deviation
            + math.cos(i * 0.7) * max_deviation * 0.5
        )
        for i in range(count)
    ]


def _send_one(send: Sender, cc_num: int, value: int, channel: int) -> bool:
    try:
        send([[cc_num], [value]], channel)
    except MidiError as exc:
        log.error("Error sending CC %d = %d: %s", cc_num, value, exc)
        return False
    return True


def wiggle_test(
    cc_num: int,
    center_value: int,
    amplitude: int,
    steps: int,
    channel: int,
    send: Sender | None = None,
    sleep: Callable[[float], object] | None = None,
) -> list[int]:
    """Send one sine period of values, 50 ms apart; return the values sent."""
    send = send or output_midi_cc
    sleep = sleep or time.sleep
    log.info(
        "Wiggle test for CC %d: center %d, amplitude %d, steps %d, channel %d",
        cc_num, center_value, amplitude, steps, channel + 1,
    )
    _validate(cc_num, center_value)

    sent = []
    for value in wiggle_values(center_value, amplitude, steps):
        if not _send_one(send, cc_num, value, channel):
            continue
        sent.append(value)
        sleep(STEP_DELAY)
    log.info("Wiggle test completed for CC %d", cc_num)
    return sent


def smooth_wiggle_test(
    cc_num: int,
    center_value: int,
    amplitude: int,
    duration: float,
    frequency: float,
    channel: int,
    send: Sender | None = None,
    clock: Callable[[], float] | None = None,
    sleep: Callable[[float], object] | None = None,
) -> list[int]:
    """Send a continuous sine wave for ``duration`` seconds at 50 updates per second."""
    send = send or output_midi_cc
    clock = clock or time.monotonic
    sleep = sleep or time.sleep
    log.info(
        "Smooth wiggle test for CC %d: center %d, amplitude %d, duration %.1fs, "
        "frequency %.1fHz, channel %d",
        cc_num, center_value, amplitude, duration, frequency, channel + 1,
    )
    _validate(cc_num, center_value)

    sent = []
    start = clock()
    while clock() - start < duration:
        elapsed = clock() - start
        value = smooth_wiggle_value(center_value, amplitude, elapsed, frequency)
        if not _send_one(send, cc_num, value, channel):
            continue
        sent.append(value)
        sleep(SMOOTH_DELAY)
    log.info("Smooth wiggle test completed for CC %d", cc_num)
    return sent


def random_wiggle_test(
    cc_num: int,
    center_value: int,
    max_deviation: int,
    count: int,
    delay: int,
    channel: int,
    send: Sender | None = None,
    sleep: Callable[[float], object] | None = None,
) -> list[int]:
    """Send ``count`` irregular values, ``delay`` milliseconds apart."""
    send = send or output_midi_cc
    sleep = sleep or time.sleep
    log.info(
        "Random wiggle test for CC %d: center %d, max deviation %d, count %d, "
        "delay %dms, channel %d",
        cc_num, center_value, max_deviation, count, delay, channel + 1,
    )
    _validate(cc_num, center_value)

    sent = []
    for value in random_wiggle_values(center_value, max_deviation, count):
        if not _send_one(send, cc_num, value, channel):
            continue
        sent.append(value)
        sleep(delay / 1000.0)
    log.info("Random wiggle test completed for CC %d", cc_num)
    return sent


def start_test(send: Sender | None = None) -> None:
    """Run the standard sequence: modulation, volume, pan, then filter cutoff."""
    wiggle_test(1, 64, 30, 20, 0, send, time.sleep)
    smooth_wiggle_test(7, 100, 20, 3.0, 2.0, 0, send, time.monotonic, time.sleep)
    random_wiggle_test(10, 64, 40, 15, 100, 0, send, time.sleep)
    log.info("Testing filter cutoff wiggle...")
    smooth_wiggle_test(74, 80, 25, 2.0, 1.5, 0, send, time.monotonic, time.sleep)