"""HTTP backend that exposes device discovery and MIDI tests as GET routes."""

from __future__ import annotations

import argparse
import logging
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Callable, Iterable
from urllib.parse import urlsplit

from .config import ConfigError, load_http_config
from .midi import list_midi_ports
from .usb import usb_port_list
from .wiggle import start_test

log = logging.getLogger(__name__)

NOT_FOUND_BODY = "404 page not found\n"
NOT_ALLOWED_BODY = "Method Not Allowed\n"


@dataclass(frozen=True)
class Route:
    """A URL path and the function that produces its response body."""

    path: str
    handler: Callable[[], str]


def _run_midi_test() -> None:
    try:
        start_test()
    except Exception:  # the test runs detached; report rather than lose the error
        log.exception("MIDI output test failed")


def default_routes(
    usb_file: str | Path | None = None, midi_file: str | Path | None = None
) -> list[Route]:
    """The backend's routes, writing the port lists to the given files."""

    def test_call() -> str:
        return "hello Client"

    def usb_ports() -> str:
        return str(usb_port_list(usb_file))

    def midi_test() -> str:
        threading.Thread(target=_run_midi_test, daemon=True).start()
        return "Midi Output Test Triggered"

    def midi_ports() -> str:
        path = list_midi_ports(midi_file)
        return f"midi ports list written to file:  {path}\n"

    return [
        Route("/testCall", test_call),
        Route("/usbPortListFile", usb_ports),
        Route("/testMidiOutput", midi_test),
        Route("/listMidiPorts", midi_ports),
    ]


def make_server(port: int | str, routes: Iterable[Route]) -> ThreadingHTTPServer:
    """Bind a server on ``port`` that answers GET requests on the given routes."""
    table = {route.path: route.handler for route in routes}

    class _Handler(BaseHTTPRequestHandler):
        def _reply(self, status: int, body: str) -> None:
            data = body.encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(data)

        def _handle(self) -> None:
            handler = table.get(urlsplit(self.path).path)
            if handler is None:
                self._reply(404, NOT_FOUND_BODY)
            elif self.command != "GET":
                self._reply(405, NOT_ALLOWED_BODY)
            else:
                self._reply(200, handler())

        do_GET = _handle
        do_POST = _handle
        do_PUT = _handle
        do_DELETE = _handle
        do_PATCH = _handle
        do_HEAD = _handle
        do_OPTIONS = _handle

        def log_message(self, format: str, *args: object) -> None:
            log.debug("%s - %s", self.address_string(), format % args)

    server = ThreadingHTTPServer(("", int(port)), _Handler)
    server.daemon_threads = True
    return server


def start_http_server(port: int | str, routes: Iterable[Route]) -> None:
    """Serve the routes on ``port`` until interrupted."""
    with make_server(port, routes) as server:
        server.serve_forever()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the device backend HTTP server.")
    parser.add_argument("--config", help="path of the configuration file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    try:
        config = load_http_config(args.config)
    except ConfigError as exc:
        log.error("%s", exc)
        return 1

    try:
        server = make_server(config.listen_port, default_routes())
    except (OSError, ValueError) as exc:
        log.error("Failed to start HTTP server: %s", exc)
        return 1

    log.info("HTTP handler started successfully.")
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())