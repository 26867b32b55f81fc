"""Serial and MIDI device discovery, MIDI control-change tests, an HTTP backend and a command-line client."""

__version__ = "0.1.0"