"""
Logging for Banward.

Every module logger is a child of the ``banward`` logger, which owns two
handlers: a colored prompt_toolkit console handler and a rotating file
handler writing one file per process under ``logs/``. The Discord client
libraries are attached to the same handlers at WARNING so gateway and HTTP
problems end up in the session log instead of disappearing.

Environment:
    BANWARD_LOG_LEVEL: console level name (default ``INFO``). The file always records DEBUG.
    BANWARD_LOG_DIR: directory for session logs (default ``<project>/logs``).
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

ROOT_LOGGER_NAME = "banward"

LOGS_DIR: Path = Path(
    os.getenv("BANWARD_LOG_DIR") or Path(__file__).parents[3] / "logs"
).resolve()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

LIBRARY_LOGGERS = ("discord", "websockets", "aiohttp")


class ColorFormatter(logging.Formatter):
    """Formatter that tints each line with the color of its level."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        return f"{color}{message}{RESET_COLOR}" if color else message


class PromptToolkitHandler(logging.Handler):
    """Console handler printing through prompt_toolkit so ANSI colors render on every terminal it supports."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def console_level() -> int:
    name = os.getenv("BANWARD_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def session_log_path() -> Path:
    """Log file for this process: ``banward-<start time>-<pid>.log``."""
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    started = datetime.now().strftime("%Y%m%d-%H%M%S")
    return LOGS_DIR / f"banward-{started}-{os.getpid()}.log"


def build_handlers() -> List[logging.Handler]:
    plain = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    use_color = sys.stderr is not None and sys.stderr.isatty()

    console = PromptToolkitHandler()
    console.setLevel(console_level())
    console.setFormatter(ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if use_color else plain)

    log_file = RotatingFileHandler(
        session_log_path(), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    log_file.setLevel(logging.DEBUG)
    log_file.setFormatter(plain)

    return [console, log_file]


def configure_logging() -> logging.Logger:
    """Attach handlers to the ``banward`` logger once and return it."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return root

    handlers = build_handlers()
    root.setLevel(logging.DEBUG)
    root.propagate = False
    for handler in handlers:
        root.addHandler(handler)

    for name in LIBRARY_LOGGERS:
        library = logging.getLogger(name)
        library.setLevel(logging.WARNING)
        library.propagate = False
        library.handlers = list(handlers)

    return root


def get_logger(name: str) -> logging.Logger:
    """Return the ``banward.<name>`` logger, configuring logging on first use."""
    configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` that logs uncaught exceptions; Ctrl+C keeps the default behavior."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    configure_logging().critical(
        "Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback)
    )
