"""
logger.py

Configures the application-wide logger using Python's standard `logging` module.

This module sets up a single logger instance named 'interview_scheduler'
(accessible via `get_logger`). Because every module in the package logs
through `logging.getLogger(__name__)`, their records propagate to this logger
and its two handlers:

1.  File Handler:
    - Writes to `config["paths"]["logs_dir"]/scheduler.log`
      (defaults to `./logs/scheduler.log`).
    - Level: `INFO` and above.

2.  Stream Handler (stdout):
    - Level: `DEBUG` and above, simpler format.

The configuration is performed only once by `_setup_logger`.
"""

import logging
import sys
from pathlib import Path

from interview_scheduler.config import config

_logger_instance = None
_DEFAULT_LOG_DIR = "./logs"
_DEFAULT_LOG_FILENAME = "scheduler.log"
_APP_LOGGER_NAME = "interview_scheduler"


def _setup_logger() -> logging.Logger:
    """
    Internal function to configure and return the singleton logger instance.

    Clears existing handlers to prevent duplication, then attaches a console
    handler and a file handler. File logging is disabled (with an error
    logged to the console) if the log directory cannot be created.
    """
    global _logger_instance
    if _logger_instance:
        return _logger_instance

    logger = logging.getLogger(_APP_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    if logger.hasHandlers():
        logger.handlers.clear()

    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s"
    )
    console_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    log_dir_path_str = config.get("paths", {}).get("logs_dir") or _DEFAULT_LOG_DIR
    try:
        log_dir = Path(log_dir_path_str)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file_path = log_dir / _DEFAULT_LOG_FILENAME

        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.error(
            f"Failed to create log directory or file at '{log_dir_path_str}': {e}. File logging disabled."
        )

    _logger_instance = logger
    return _logger_instance


def get_logger() -> logging.Logger:
    """
    Public function to retrieve the application's configured logger instance.

    Returns:
        logging.Logger: The application's configured logger instance.
    """
    return _setup_logger()
