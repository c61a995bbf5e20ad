"""
Logging setup shared by every Warncord module.

Each named logger gets two handlers:

* a console handler that prints through prompt_toolkit at INFO and above,
  coloured by level when stderr is a terminal;
* a rotating file handler in ``logs/`` that keeps DEBUG records.

All loggers of one process write to the same session file.
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

# A log file touched this recently is treated as the same session
SESSION_REUSE_SECONDS = 60

LOG_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

_session_log: Optional[Path] = None


class ColorFormatter(logging.Formatter):
    """Wrap each formatted record in the ANSI colour for its level.

    Moderation decisions log at INFO, enforcement failures at WARNING and
    persistence failures at ERROR.
    """

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LOG_COLORS.get(record.levelname)
        if not color:
            return text
        return color + text + RESET_COLOR


class PromptToolkitHandler(logging.Handler):
    """Console handler that prints with ``print_formatted_text`` so log lines
    never tear an active prompt."""

    def __init__(self, formatter: Optional[logging.Formatter] = None):
        super().__init__()
        if formatter is not None:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


_plain_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
_console_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else _plain_formatter


def get_log_filepath() -> Path:
    """Return this session's log file, choosing it on first call.

    A quick restart keeps appending to the newest file from today instead of
    starting another one.
    """
    global _session_log

    if _session_log is not None:
        return _session_log

    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    now = datetime.now()
    todays = list(LOGS_DIR.glob(f"{now:%Y-%m-%d}*.log"))
    newest = max(todays, key=lambda p: p.stat().st_mtime, default=None)

    if newest is not None and now.timestamp() - newest.stat().st_mtime < SESSION_REUSE_SECONDS:
        _session_log = newest
    else:
        _session_log = LOGS_DIR / f"{now.strftime(DATE_FORMAT)}.log"
    return _session_log


def _console_handler() -> logging.Handler:
    handler = PromptToolkitHandler(formatter=_console_formatter)
    handler.setLevel(logging.INFO)
    return handler


def _file_handler() -> logging.Handler:
    handler = RotatingFileHandler(
        get_log_filepath(),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_plain_formatter)
    return handler


def setup_logger(logger_name: str) -> logging.Logger:
    """Attach Warncord's handlers to ``logger_name`` once and return the logger."""
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(_console_handler())
    logger.addHandler(_file_handler())
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    return setup_logger(logger_name)


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` that logs uncaught exceptions; Ctrl+C keeps the default hook."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


# Library loggers that would otherwise flood the console
NOISY_LOGGERS = [
    "discord",
    "discord.gateway",
    "discord.client",
    "discord.http",
    "websockets",
    "aiohttp",
    "aiosqlite",
]

for _name in NOISY_LOGGERS:
    _noisy = logging.getLogger(_name)
    _noisy.setLevel(logging.ERROR)
    _noisy.propagate = False
    _noisy.handlers = []
