"""
Shared logger factory.

Console output carries a short local-time stamp (LOG_TIMEZONE, default
America/New_York); the optional rotating file under /tmp/log/watchlist-search
carries full UTC timestamps. Errors are framed so they stand out in a busy
console.
"""

import logging
import os
from datetime import UTC, datetime
from logging.handlers import TimedRotatingFileHandler

import pytz

LOG_DIR = "/tmp/log/watchlist-search"
TIMEZONE = pytz.timezone(os.getenv("LOG_TIMEZONE", "America/New_York"))

_CONSOLE_FORMATS = {
    logging.WARNING: "%(stamp)-10s %(short_name)-24s:%(levelname)-8s =====> %(message)s",
    logging.ERROR: "\n%(stamp)-10s %(short_name)-24s =====> ERROR\n%(message)s\n---END ERROR ---\n",
    logging.INFO: "%(stamp)-10s %(short_name)-24s:%(levelname)-8s %(message)s",
}
_FILE_FORMATS = {
    logging.WARNING: "%(stamp)s:%(name)s:%(levelname)s =====> %(message)s",
    logging.INFO: "%(stamp)s:%(name)s:%(levelname)s %(message)s",
}

_loggers: dict[str, logging.Logger] = {}


def _level_from_env() -> int:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


default_level = _level_from_env()


class ZonedFormatter(logging.Formatter):
    """Picks a layout by severity and stamps each record in the given zone."""

    def __init__(self, formats: dict[int, str], tz, time_format: str, name_width: int = 24):
        super().__init__()
        self.formats = sorted(formats.items(), reverse=True)
        self.tz = tz
        self.time_format = time_format
        self.name_width = name_width

    def format(self, record):
        created = datetime.fromtimestamp(record.created, UTC)
        record.stamp = created.astimezone(self.tz).strftime(self.time_format)
        record.short_name = record.name[: self.name_width]
        self._style._fmt = next(
            (fmt for threshold, fmt in self.formats if record.levelno >= threshold),
            self.formats[-1][1],
        )
        return super().format(record)


def set_level(level):
    """Change the level of every logger handed out so far, and of future ones."""
    global default_level
    default_level = level
    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


def _file_handler(filename: str, level) -> logging.Handler:
    os.makedirs(LOG_DIR, exist_ok=True)
    path = os.path.join(LOG_DIR, os.path.basename(filename))
    try:
        handler: logging.Handler = TimedRotatingFileHandler(path, when="midnight", backupCount=30)
    except FileNotFoundError:
        handler = logging.FileHandler(path)
    handler.setLevel(level)
    handler.setFormatter(ZonedFormatter(_FILE_FORMATS, pytz.utc, "%Y-%m-%d %H:%M:%S"))
    return handler


def get_logger(name: str, level=None, filename=None) -> logging.Logger:
    """Return a cached logger writing to the console and optionally a rotating file."""
    if name in _loggers:
        return _loggers[name]

    level = default_level if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(ZonedFormatter(_CONSOLE_FORMATS, TIMEZONE, "%I:%M:%S %p"))
    logger.addHandler(console)

    if filename:
        logger.addHandler(_file_handler(filename, level))

    logger.propagate = False
    _loggers[name] = logger
    return logger
