"""Logging for the bridge.

The bridge usually runs inside an editor host that captures stderr into an
output channel, so by default nothing is written unless stderr is a TTY or a
log file is configured (``logging.file`` in config, or ``IDEBRIDGE_LOG``).

Levels, most to least verbose: trace, debug, verbose, info, warning, error.
``--verbose N`` picks one of error(0) .. trace(4).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from idebridge.config.schema import LoggingConfig

LOG_ENV_VAR = "IDEBRIDGE_LOG"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s]: %(message)s"
DATE_FORMAT = "%H:%M:%S"

TRACE = 5
VERBOSE = 15
for _level, _name in ((TRACE, "TRACE"), (VERBOSE, "VERBOSE")):
    logging.addLevelName(_level, _name)

# Index is the --verbose value
VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

# uvicorn reports bind and shutdown errors here
_FORWARDED_LOGGERS = ("uvicorn.error",)

logger = logging.getLogger("idebridge")

_handlers: list[logging.Handler] = []


class _LowercaseLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level for a logging config; ``verbose`` wins over ``level``."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        index = min(max(config.verbose, 0), len(VERBOSITY_LEVELS) - 1)
        return VERBOSITY_LEVELS[index]
    if config.level:
        name = config.level.upper()
        if name == "WARN":
            name = "WARNING"
        level = logging.getLevelName(name)
        return level if isinstance(level, int) else logging.INFO
    return logging.INFO


def _open_file_handler(path: str) -> logging.Handler | None:
    try:
        return logging.FileHandler(os.path.expanduser(path), mode="a", encoding="utf-8")
    except OSError as e:
        if sys.stderr.isatty():
            print(f"[idebridge] Failed to open log file {path}: {e}", file=sys.stderr)
        return None


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install handlers once at startup. Later calls are no-ops."""
    if _handlers:
        return

    level = resolve_level(config)
    log_path = (config.file if config else None) or os.environ.get(LOG_ENV_VAR)

    handler = _open_file_handler(log_path) if log_path else None
    if handler is None and sys.stderr.isatty():
        handler = logging.StreamHandler(sys.stderr)
    if handler is None:
        # Headless and no file: stay quiet
        handler = logging.NullHandler()

    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    _handlers.append(handler)

    logger.setLevel(level)
    logger.addHandler(handler)
    for name in _FORWARDED_LOGGERS:
        logging.getLogger(name).addHandler(handler)


def reset_logging() -> None:
    """Remove installed handlers so setup_logging can run again (tests)."""
    while _handlers:
        handler = _handlers.pop()
        logger.removeHandler(handler)
        for name in _FORWARDED_LOGGERS:
            logging.getLogger(name).removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def get_logger(name: str | None = None) -> logging.Logger:
    """The package logger, or its child ``idebridge.<name>``."""
    return logger.getChild(name) if name else logger
