"""
logsink Log Model

Type definitions for log entries handed to sink drivers.

Model:
- Level: host level codes (lower code = more severe)
- LogEntry: one log line with its wall-clock time in Unix nanoseconds
- Instance: a configured sink (name + driver key + free-form setting map)

Level names are the strings written to the `level` column; the numeric code
goes to `level_code`. Codes outside the table are written as UNKNOWN.

Property of Uncompromising Sensors LLC.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Union


class Level(IntEnum):
    """Host log levels, syslog ordering."""
    PANIC = 0
    FATAL = 1
    ERROR = 2
    WARNING = 3
    NOTICE = 4
    INFO = 5
    TRACE = 6
    DEBUG = 7


LEVEL_NAMES: Dict[int, str] = {level.value: level.name for level in Level}

UNKNOWN_LEVEL = "UNKNOWN"

# Stdlib logging levels, highest first, for round-down lookup
_LOGGING_LEVELS = [
    (logging.CRITICAL, Level.FATAL),
    (logging.ERROR, Level.ERROR),
    (logging.WARNING, Level.WARNING),
    (logging.INFO, Level.INFO),
]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def levelName(code: int) -> str:
    """Return the level name for a code, UNKNOWN if the code is not a Level."""
    return LEVEL_NAMES.get(int(code), UNKNOWN_LEVEL)


def levelFromLogging(levelno: int) -> Level:
    """Map a stdlib logging level number onto a Level (rounding down)."""
    for threshold, level in _LOGGING_LEVELS:
        if levelno >= threshold:
            return level
    return Level.DEBUG


def toUnixNanos(value: Union[int, float, datetime]) -> int:
    """
    Convert a time value to Unix nanoseconds.

    Args:
        value: int (already nanoseconds), float (seconds) or datetime
               (naive datetimes are taken as UTC)
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - _EPOCH
        return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000
    if isinstance(value, bool):
        raise TypeError("bool is not a time value")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value * 1_000_000_000))
    raise TypeError(f"Unsupported time value: {type(value).__name__}")


@dataclass
class LogEntry:
    """One log line as produced by the host."""
    body: str = ""
    level: int = Level.INFO
    time: int = field(default_factory=time.time_ns)  # Unix nanoseconds
    fields: Dict[str, Any] = field(default_factory=dict)
    project: str = ""
    profile: str = ""
    node: str = ""


@dataclass
class Instance:
    """A configured sink: which driver to use and its setting map."""
    name: str
    driver: str = "greptime"
    setting: Dict[str, Any] = field(default_factory=dict)
