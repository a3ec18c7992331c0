"""
Logging setup for PrinterInstallWeb.

Every record carries the name of the thread that produced it, so the
interleaved output of the web thread, the configuration refresh thread
and the batch install threads can be told apart:

    2026-10-19 10:15:31 [INFO    ] [ConfigRefresh] printer_installer.services.config_service - Loaded 4 locations
    2026-10-19 10:15:40 [INFO    ] [Batch-a1b2c3d4] printer_installer.batch.a1b2c3d4 - Installing 3 printers
    2026-10-19 10:15:41 [WARNING ] [Install-HR-Color] core.cups_admin - lpadmin -x HR-Color exited 1

Handlers are attached to the application logger and to the ``core``,
``models`` and ``modules`` loggers used by the lower layers. In production two rotating
files are written: the full log and an error-only log that replaces the
crash log of the desktop installer.
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional


APP_LOGGER_NAME = "printer_installer"

LIBRARY_LOGGERS = ("core", "models", "modules")

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


class ThreadContextFilter(logging.Filter):
    """Stamp ``thread_name`` on each record (``Batch-xxxxxxxx``, ``Install-<printer>``, ...)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.thread_name = threading.current_thread().name
        return True


def default_log_dir() -> Path:
    """``logs/`` beside the executable when frozen, beside the sources otherwise."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent / "logs"
    return Path(__file__).resolve().parent / "logs"


def _prepare(handler: logging.Handler, level: int, formatter: logging.Formatter,
             context: logging.Filter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(context)
    return handler


def _file_handlers(log_dir: Path, app_name: str, level: int,
                   formatter: logging.Formatter, context: logging.Filter) -> List[logging.Handler]:
    log_dir.mkdir(parents=True, exist_ok=True)
    files = (
        (log_dir / f"{app_name}.log", level),
        (log_dir / f"{app_name}_error.log", logging.ERROR),
    )
    return [
        _prepare(
            RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"),
            file_level,
            formatter,
            context,
        )
        for path, file_level in files
    ]


def _attach(logger: logging.Logger, handlers: Iterable[logging.Handler], level: int) -> None:
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers = list(handlers)


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure the application logger and return it.

    Safe to call more than once (each test app calls it); previous
    handlers are replaced, not stacked.

    Args:
        app_name: Name of the application logger
        log_level: Minimum level for console and main log file
        log_dir: Directory for log files (default: default_log_dir())
        enable_file_logging: Write the rotating log and error-log files
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    context = ThreadContextFilter()

    handlers = [_prepare(logging.StreamHandler(sys.stdout), log_level, formatter, context)]
    if enable_file_logging:
        log_dir = log_dir or default_log_dir()
        handlers.extend(_file_handlers(log_dir, app_name, log_level, formatter, context))

    logger = logging.getLogger(app_name)
    _attach(logger, handlers, log_level)
    for name in LIBRARY_LOGGERS:
        _attach(logging.getLogger(name), handlers, log_level)

    if enable_file_logging:
        logger.info(f"Writing logs to {log_dir}")
    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the application namespace, e.g. ``printer_installer.services.install_service``."""
    if name != APP_LOGGER_NAME and not name.startswith(APP_LOGGER_NAME + "."):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_batch_logger(batch_id: str) -> logging.Logger:
    """Logger for one install batch, keyed by the first 8 characters of its id."""
    return logging.getLogger(f"{APP_LOGGER_NAME}.batch.{batch_id[:8]}")


def set_thread_name(name: str) -> None:
    threading.current_thread().name = name
