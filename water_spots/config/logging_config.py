"""
Logging Configuration for the Water Spot Discovery Engine
Handlers are attached to the `water_spots` package logger, so a host
application keeps control of the root logger.
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .settings import (
    JST_TZ,
    LOG_BACKUP_COUNT,
    LOG_DIR,
    LOG_FILE,
    LOG_LEVEL,
    LOG_MAX_BYTES,
    LOG_TO_FILE,
)

PACKAGE_LOGGER = 'water_spots'
LOG_FORMAT = '%(asctime)s JST %(levelname)-7s [%(name)s] %(message)s'

# Libraries that log every export attempt at INFO
NOISY_LOGGERS = ('opentelemetry', 'phoenix', 'urllib3')


class JSTFormatter(logging.Formatter):
    """Formatter stamping records in Japan Standard Time"""

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, JST_TZ)
        return stamp.strftime(datefmt or '%Y-%m-%d %H:%M:%S')


def _owned(handler):
    return getattr(handler, '_water_spots', False)


def _build_handlers(level, log_to_file, log_dir, log_file):
    formatter = JSTFormatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    handlers = [console_handler]

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_path / log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding='utf-8'
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        handler._water_spots = True
    return handlers


def setup_logging(level=None, log_to_file=None, log_dir=None, log_file=None):
    """
    Configure logging for the discovery engine

    Calling it again replaces the handlers installed by the previous call
    and leaves any other handler alone.

    Args:
        level: Logging level name or number (default LOG_LEVEL)
        log_to_file: Also write a rotating log file (default LOG_TO_FILE)
        log_dir: Directory for the log file (default LOG_DIR)
        log_file: Name of the log file (default LOG_FILE)

    Returns:
        The configured `water_spots` logger
    """
    level = level if level is not None else LOG_LEVEL
    if log_to_file is None:
        log_to_file = LOG_TO_FILE

    reset_logging()

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _build_handlers(level, log_to_file, log_dir or LOG_DIR, log_file or LOG_FILE):
        package_logger.addHandler(handler)
    package_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return package_logger


def reset_logging():
    """Remove the handlers installed by setup_logging"""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in package_logger.handlers if _owned(h)]:
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)


def get_logger(name):
    """
    Get logger for specific module

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
