"""Low-level helpers for HTTP/1.x request lines, headers and dates."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import formatdate

_HEADER_TRAILING = b"\r\n \t"
_HEADER_LEADING = b" \t"


@dataclass(frozen=True)
class RequestLine:
    """The three parts of an HTTP request line."""

    method: str
    path: str
    version: str


def header_starts_with(line: bytes, prefix: bytes) -> bool:
    """Case-insensitive ASCII prefix test."""
    if len(line) < len(prefix):
        return False
    return line[: len(prefix)].lower() == prefix.lower()


def header_contains(line: bytes, substring: bytes) -> bool:
    """Case-insensitive ASCII substring test."""
    if not substring:
        return True
    return substring.lower() in line.lower()


def trim_header_line(line: bytes) -> bytes:
    """Strip line endings and surrounding blanks from a header line."""
    return line.rstrip(_HEADER_TRAILING).lstrip(_HEADER_LEADING)


def extract_header_value(line: bytes, header_name: bytes) -> bytes | None:
    """Return the value after ``header_name`` (which includes the colon), or None if empty."""
    if len(line) <= len(header_name):
        return None
    value = line[len(header_name):].lstrip(_HEADER_LEADING)
    return value or None


def parse_request_line(request: bytes) -> RequestLine:
    """Split a request line into method, path and version.

    Runs of spaces between the parts are accepted. Raises ValueError when
    there are not exactly three parts or the path or version is not UTF-8.
    """
    parts = [part for part in request.split(b" ") if part]
    if len(parts) != 3:
        raise ValueError(f"malformed request line: {request!r}")
    method, path, version = parts
    return RequestLine(
        method=method.decode("latin-1"),
        path=path.decode("utf-8"),
        version=version.decode("utf-8"),
    )


def format_http_date(timestamp: float) -> str:
    """Format seconds since the epoch as an IMF-fixdate."""
    return formatdate(int(timestamp), usegmt=True)


_SHORT_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_LONG_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_TIME = r"(?P<hour>[0-9]{2}):(?P<minute>[0-9]{2}):(?P<second>[0-9]{2})"
_IMF_FIXDATE = re.compile(
    r"(?P<wday>[A-Za-z]{3}), (?P<day>[0-9]{2}) (?P<month>[A-Za-z]{3}) (?P<year>[0-9]{4}) "
    + _TIME
    + r" GMT"
)
_RFC850 = re.compile(
    r"(?P<wday>[A-Za-z]+), (?P<day>[0-9]{2})-(?P<month>[A-Za-z]{3})-(?P<year>[0-9]{2}) "
    + _TIME
    + r" GMT"
)
_ASCTIME = re.compile(
    r"(?P<wday>[A-Za-z]{3}) (?P<month>[A-Za-z]{3}) (?P<day>[ 0-9][0-9]) "
    + _TIME
    + r" (?P<year>[0-9]{4})"
)


def parse_http_date(value: str | bytes) -> int:
    """Parse an HTTP date (IMF-fixdate, RFC 850 or asctime) to seconds since the epoch.

    Raises ValueError for anything that is not a valid date in one of those forms.
    """
    if isinstance(value, bytes):
        value = value.decode("ascii")

    for pattern, weekdays in ((_IMF_FIXDATE, _SHORT_DAYS), (_RFC850, _LONG_DAYS), (_ASCTIME, _SHORT_DAYS)):
        match = pattern.fullmatch(value)
        if match is not None:
            break
    else:
        raise ValueError(f"not an HTTP date: {value!r}")

    fields = match.groupdict()
    if fields["wday"] not in weekdays:
        raise ValueError(f"bad weekday in HTTP date: {value!r}")
    if fields["month"] not in _MONTHS:
        raise ValueError(f"bad month in HTTP date: {value!r}")

    year = int(fields["year"])
    if pattern is _RFC850:
        year += 2000 if year < 70 else 1900
    if year < 1970:
        raise ValueError(f"HTTP date before 1970: {value!r}")

    moment = datetime(
        year,
        _MONTHS.index(fields["month"]) + 1,
        int(fields["day"].strip()),
        int(fields["hour"]),
        int(fields["minute"]),
        int(fields["second"]),
        tzinfo=timezone.utc,
    )
    if moment.weekday() != weekdays.index(fields["wday"]):
        raise ValueError(f"weekday does not match date: {value!r}")
    return int(moment.timestamp())