"""Logging setup for horde-gallery.

The pollers log on every tick (image refresh, final checks, throttle waits),
so they get a level of their own, separate from the rest of the package.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
FormatStyle = Literal["simple", "detailed", "json"]

# Modules whose messages repeat with every poll tick
POLLING_LOGGERS = (
    "horde_gallery.polling",
    "horde_gallery.gallery",
    "horde_gallery.throttle",
)

# httpx logs one line per request, i.e. per tick
_HTTP_LOGGERS = ("httpx", "httpcore")

_TEXT_FORMATS = {
    "simple": "%(levelname)s %(name)s: %(message)s",
    "detailed": "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Carries the asyncio task name when the interpreter records it, so
    interleaved poller output can be told apart.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        task = getattr(record, "taskName", None)
        if task:
            entry["task"] = task
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _make_formatter(format_style: FormatStyle) -> logging.Formatter:
    if format_style == "json":
        return JsonFormatter()
    return logging.Formatter(_TEXT_FORMATS[format_style])


def setup_logging(
    level: LogLevel = "INFO",
    *,
    format_style: FormatStyle = "simple",
    poll_level: LogLevel | None = None,
) -> None:
    """Configure logging to stderr.

    Args:
        level: Minimum level for everything
        format_style: simple, detailed, or json (one object per line)
        poll_level: Level for the polling loggers; None lets them follow ``level``
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_make_formatter(format_style))
    logging.basicConfig(level=getattr(logging, level), handlers=[handler], force=True)

    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # NOTSET on reconfiguration, so an earlier poll_level does not stick
    poll = getattr(logging, poll_level) if poll_level is not None else logging.NOTSET
    for name in POLLING_LOGGERS:
        logging.getLogger(name).setLevel(poll)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``horde_gallery`` namespace (``__name__`` is used as is)."""
    if name == "horde_gallery" or name.startswith("horde_gallery."):
        return logging.getLogger(name)
    return logging.getLogger(f"horde_gallery.{name}")
