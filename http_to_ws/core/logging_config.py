"""Process-wide logging setup, called once from the entry point."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 500 * 1024
LOG_FILE_BACKUPS = 2

# aiohttp logs one access line per forwarded request otherwise.
NOISY_LOGGERS = ("aiohttp.access",)

LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    try:
        return LOG_LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level '{level}'") from None


def build_handlers(
    *,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = LOG_FILE_MAX_BYTES,
    backup_count: int = LOG_FILE_BACKUPS,
) -> List[logging.Handler]:
    """Stdout and/or rotating-file handlers sharing the bridge's format."""
    handlers: List[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        )

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def quiet_loggers(names: Iterable[str], level: int) -> None:
    """Raise ``names`` to ERROR unless the bridge itself runs at DEBUG."""
    target = level if level <= logging.DEBUG else logging.ERROR
    for name in names:
        logging.getLogger(name).setLevel(target)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = LOG_FILE_MAX_BYTES,
    backup_count: int = LOG_FILE_BACKUPS,
    suppressed_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Replace the root logger's handlers with the bridge's own.

    Args:
        level: Logging level as an int or a name such as ``"info"``.
        console: Emit records to stdout.
        log_file: Optional path for a rotating file handler.
        max_bytes: Size at which the log file rotates.
        backup_count: Number of rotated files kept.
        suppressed_loggers: Logger names raised to ERROR unless ``level`` is DEBUG.
    """
    numeric_level = coerce_level(level)
    handlers = build_handlers(
        console=console, log_file=log_file, max_bytes=max_bytes, backup_count=backup_count
    ) or [logging.NullHandler()]

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)
    quiet_loggers(suppressed_loggers, numeric_level)


__all__ = [
    "LOG_DATEFMT",
    "LOG_FORMAT",
    "LOG_LEVELS",
    "build_handlers",
    "coerce_level",
    "configure_logging",
    "quiet_loggers",
]
