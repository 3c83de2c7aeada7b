"""Leveled diagnostic logging with a fixed header layout."""

from __future__ import annotations

import inspect
import sys
import time
from datetime import datetime
from enum import IntEnum

LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogLevel(IntEnum):
    """Severity levels; a message is shown when its level is at least LOG_LEVEL."""

    ALL = 0
    TRACE = 100
    DEBUG = 200
    INFO = 300
    WARN = 400
    ERROR = 500
    OFF = 1000


LOG_LEVEL = LogLevel.DEBUG

_LEVEL_NAMES = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARN: "WARN ",
    LogLevel.INFO: "INFO ",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.TRACE: "TRACE",
}


def level_name(level: int) -> str:
    """Return the five-character tag printed for a level."""
    return _LEVEL_NAMES.get(level, "UNKWN")


def _short_file(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def format_log_header(
    file: str,
    line: int,
    func: str,
    level: int,
    timestamp: datetime | float | None = None,
) -> str:
    """Build the header ``<time> [<file>:<line>:<func>] <TYPE> - ``.

    ``timestamp`` may be a datetime, seconds since the epoch, or None for now.
    """
    if timestamp is None:
        moment = datetime.fromtimestamp(time.time())
    elif isinstance(timestamp, datetime):
        moment = timestamp
    else:
        moment = datetime.fromtimestamp(timestamp)
    time_str = moment.strftime(LOG_TIME_FORMAT)
    return f"{time_str} [{_short_file(file)}:{line}:{func}] {level_name(level)} - "


def emit_log(level: int, fmt: str, *args: object) -> str | None:
    """Write one log line to stdout if ``level`` is enabled.

    Returns the line written, or None when the level is filtered out.
    """
    if level < LOG_LEVEL:
        return None
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    try:
        if caller is not None:
            file, line, func = caller.f_code.co_filename, caller.f_lineno, caller.f_code.co_name
        else:
            file, line, func = "", 0, ""
    finally:
        del frame, caller
    message = fmt % args if args else fmt
    text = format_log_header(file, line, func, level) + message + "\n"
    sys.stdout.write(text)
    sys.stdout.flush()
    return text