from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_FORMAT = "[%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_ALIASES: dict[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "TRACE": logging.DEBUG,
}

# Marks handlers installed here so repeated setup replaces rather than stacks them
_HANDLER_TAG = "_bandcombo_handler"


class SafeStreamHandler(logging.StreamHandler):  # type: ignore[type-arg]
    def emit(self, record: logging.LogRecord) -> None:
        try:
            super().emit(record)
        except ValueError:
            # Stream closed underneath us (pytest capture, interpreter shutdown)
            pass


def parse_log_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Numeric level from a name ("debug", "warn"), a number, or None."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    raw = value.strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    return _LEVEL_ALIASES.get(raw.upper().replace("-", "_"), default)


def log_level_name(value: str | int | None, default: int = logging.INFO) -> str:
    """Lowercase level name, as uvicorn expects it."""
    level = parse_log_level(value, default)
    name = logging.getLevelName(level)
    if isinstance(name, str) and not name.startswith("Level "):
        return name.lower()
    return logging.getLevelName(default).lower()


def configure_logging(level: str | int | None = None, log_file: str | None = None) -> int:
    """Install console (and optional rotating file) handlers on the root logger.

    Returns the numeric level applied.
    """
    numeric = parse_log_level(level)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    console = SafeStreamHandler()
    console.setLevel(numeric)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    setattr(console, _HANDLER_TAG, True)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        # 5MB max, 3 backups
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=5 * 1024 * 1024, backupCount=3
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    root.setLevel(logging.DEBUG if log_file else numeric)
    return numeric
