"""Asyncio HTTP/1.1 server that answers GET and HEAD from the in-memory file cache."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import socket
import sys

from . import responses
from .cache import PathTrie, build_file_cache
from .handler import respond
from .httputil import (
    extract_header_value,
    header_contains,
    header_starts_with,
    parse_request_line,
    trim_header_line,
)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_STATIC_DIR = "./content"
MAX_REQUEST_SIZE = 8192
CONNECTION_TIMEOUT_SECS = 30.0
KEEPALIVE_TIMEOUT_SECS = 5.0
_STREAM_LIMIT = 64 * 1024

_CONNECTION = b"connection:"
_IF_MODIFIED_SINCE = b"if-modified-since:"
_IF_NONE_MATCH = b"if-none-match:"


class Server:
    """Serves cached static files plus the /health and /ready endpoints."""

    connection_timeout: float = CONNECTION_TIMEOUT_SECS
    keepalive_timeout: float = KEEPALIVE_TIMEOUT_SECS

    def __init__(self, cache: PathTrie, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        self.cache = cache
        self.host = host
        self.port = port
        self._server: asyncio.AbstractServer | None = None
        self._shutting_down = False

    async def handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Serve requests on one connection until it closes, times out or asks to stop."""
        sock = writer.get_extra_info("socket")
        if sock is not None:
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        try:
            try:
                await asyncio.wait_for(self._serve_requests(reader, writer), self.connection_timeout)
            except asyncio.TimeoutError:
                with contextlib.suppress(OSError):
                    await self._send(writer, responses.REQUEST_TIMEOUT)
            except OSError:
                pass
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

    async def _serve_requests(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        while not self._shutting_down:
            try:
                raw = await asyncio.wait_for(reader.readline(), self.keepalive_timeout)
            except asyncio.TimeoutError:
                break
            except ValueError:
                await self._send(writer, responses.REQUEST_TOO_LARGE)
                break
            except OSError:
                break
            if not raw:
                break
            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError:
                break
            if len(raw) > MAX_REQUEST_SIZE:
                await self._send(writer, responses.REQUEST_TOO_LARGE)
                break

            stripped = text.strip()
            if not stripped:
                continue

            try:
                request = parse_request_line(stripped.encode("utf-8"))
            except ValueError:
                await self._send(writer, responses.BAD_REQUEST)
                break

            if request.method not in ("GET", "HEAD"):
                await self._send(writer, responses.METHOD_NOT_ALLOWED)
                break

            keep_alive, if_modified_since, if_none_match = await self._read_headers(reader, request.version)
            response = respond(
                self.cache,
                request.path,
                request.method == "HEAD",
                if_modified_since,
                if_none_match,
            )
            await self._send(writer, response)
            if not keep_alive:
                break

    @staticmethod
    async def _read_headers(
        reader: asyncio.StreamReader, version: str
    ) -> tuple[bool, bytes | None, bytes | None]:
        keep_alive = version == "HTTP/1.1"
        if_modified_since: bytes | None = None
        if_none_match: bytes | None = None
        while True:
            try:
                raw = await reader.readline()
            except (ValueError, OSError):
                break
            if not raw or raw == b"\r\n":
                break
            line = trim_header_line(raw)
            if not line:
                break
            if header_starts_with(line, _CONNECTION):
                close_requested = header_contains(line, b"close")
                keep_alive = not close_requested and (
                    version == "HTTP/1.1" or header_contains(line, b"keep-alive")
                )
            elif header_starts_with(line, _IF_MODIFIED_SINCE):
                value = extract_header_value(line, _IF_MODIFIED_SINCE)
                if value is not None:
                    if_modified_since = value
            elif header_starts_with(line, _IF_NONE_MATCH):
                value = extract_header_value(line, _IF_NONE_MATCH)
                if value is not None:
                    if_none_match = value
        return keep_alive, if_modified_since, if_none_match

    @staticmethod
    async def _send(writer: asyncio.StreamWriter, data: bytes) -> None:
        writer.write(data)
        await writer.drain()

    async def start(self) -> asyncio.AbstractServer:
        """Bind the listening socket and begin accepting connections."""
        self._shutting_down = False
        self._server = await asyncio.start_server(
            self.handle_connection, self.host, self.port, limit=_STREAM_LIMIT
        )
        sockets = self._server.sockets
        if sockets:
            self.port = sockets[0].getsockname()[1]
        return self._server

    async def serve(self) -> None:
        """Run until SIGINT or SIGTERM, then stop accepting and finish."""
        if self._server is None:
            await self.start()
        print(f"Server running on http://{self.host}:{self.port}")

        loop = asyncio.get_running_loop()
        stop = asyncio.Event()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except (NotImplementedError, RuntimeError, ValueError):
                continue
            installed.append(sig)

        try:
            await stop.wait()
            print("Shutdown signal received, stopping server...")
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            self._shutting_down = True
            if self._server is not None:
                self._server.close()
                self._server = None


def run(static_dir: str = DEFAULT_STATIC_DIR, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Build the cache for ``static_dir`` and serve it until told to stop."""
    cache = build_file_cache(static_dir)
    server = Server(cache, host, port)
    try:
        asyncio.run(server.serve())
    except KeyboardInterrupt:
        print("Shutdown signal received, stopping server...")
    print("Server shutdown complete")


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(prog="kisserve", description="Serve a directory of static files from memory.")
    parser.add_argument("--dir", default=DEFAULT_STATIC_DIR, help="directory to serve (default: %(default)s)")
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to bind (default: %(default)s)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to bind (default: %(default)s)")
    args = parser.parse_args(argv)
    try:
        run(args.dir, args.host, args.port)
    except OSError as exc:
        print(f"Failed to bind to address: {exc}", file=sys.stderr)
        return 1
    return 0