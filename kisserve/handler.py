"""Turns a parsed GET or HEAD request into the bytes to send back."""

from __future__ import annotations

from . import responses
from .cache import CacheEntry, PathTrie
from .httputil import parse_http_date


def is_not_modified(
    entry: CacheEntry,
    if_modified_since: bytes | str | None,
    if_none_match: bytes | str | None,
) -> bool:
    """Decide whether a conditional request may be answered with 304.

    If-Modified-Since is checked first; an unparseable date is ignored.
    If-None-Match matches on ``*`` or when it contains the entry's ETag.
    """
    if if_modified_since is not None:
        try:
            client_time = parse_http_date(if_modified_since)
        except ValueError:
            client_time = None
        if client_time is not None and entry.last_modified <= client_time:
            return True

    if if_none_match is not None:
        if isinstance(if_none_match, str):
            if_none_match = if_none_match.encode("utf-8")
        if if_none_match == b"*" or entry.etag.encode("utf-8") in if_none_match:
            return True

    return False


def respond(
    cache: PathTrie,
    path: str,
    is_head: bool = False,
    if_modified_since: bytes | str | None = None,
    if_none_match: bytes | str | None = None,
) -> bytes:
    """Return the full response for a request path."""
    if path == "/health":
        return responses.HEALTH_HEADERS if is_head else responses.HEALTH_COMPLETE
    if path == "/ready":
        return responses.READY_HEADERS if is_head else responses.READY_COMPLETE

    entry = cache.get(path)
    if entry is None:
        return responses.NOT_FOUND
    if is_not_modified(entry, if_modified_since, if_none_match):
        return entry.not_modified_response
    return entry.headers_only if is_head else entry.complete_response