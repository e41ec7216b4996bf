"""Prebuilt wire responses for errors and the health endpoints."""

from __future__ import annotations

import json

_NOSNIFF = "X-Content-Type-Options: nosniff\r\n"
_KEEP_ALIVE = "Connection: keep-alive\r\n"


def _plain_error(status: str, message: str) -> bytes:
    body = message.encode("ascii")
    head = (
        f"HTTP/1.1 {status}\r\n"
        "Content-Type: text/plain\r\n"
        f"Content-Length: {len(body)}\r\n"
        f"{_NOSNIFF}{_KEEP_ALIVE}\r\n"
    )
    return head.encode("ascii") + body


def json_status_response(status: str) -> tuple[bytes, bytes]:
    """Build a JSON status reply as ``(complete response, headers only)``."""
    body = json.dumps({"status": status, "timestamp": "0"}, separators=(",", ":")).encode("utf-8")
    headers = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        f"{_NOSNIFF}{_KEEP_ALIVE}\r\n"
    ).encode("ascii")
    return headers + body, headers


NOT_FOUND = _plain_error("404 Not Found", "File not found")
METHOD_NOT_ALLOWED = _plain_error("405 Method Not Allowed", "Method not allowed")
REQUEST_TOO_LARGE = _plain_error("413 Request Entity Too Large", "Request too large")
BAD_REQUEST = _plain_error("400 Bad Request", "Malformed request")
REQUEST_TIMEOUT = _plain_error("408 Request Timeout", "Request timeout")

HEALTH_COMPLETE, HEALTH_HEADERS = json_status_response("healthy")
READY_COMPLETE, READY_HEADERS = json_status_response("ready")