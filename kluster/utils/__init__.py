"""Utility functions and helpers for the kluster application."""
import re
from datetime import timedelta
from typing import Union

from ..errors import InvalidDuration
from .files import read_lines, to_string, write_lines, write_text

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_UNITS = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


def parse_duration(value: Union[str, timedelta]) -> timedelta:
    """Parse a Go style duration string such as ``24h``, ``1ms`` or ``1h30m``.

    Args:
        value: Duration string, or a timedelta which is returned unchanged

    Returns:
        The parsed duration

    Raises:
        InvalidDuration: If the string is not a valid duration
    """
    if isinstance(value, timedelta):
        return value
    text = (value or "").strip()
    if text == "0":
        return timedelta(0)
    pos = 0
    total = timedelta(0)
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise InvalidDuration(value)
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    if not text or pos != len(text):
        raise InvalidDuration(value)
    return total


__all__ = [
    "parse_duration",
    "read_lines",
    "to_string",
    "write_lines",
    "write_text",
]
