"""
Logging module for the Vue School downloader.

Every module logs through the single "vueschool" logger configured here, so
console and file output share one format and one set of levels.
"""
import logging
import os
import sys
from datetime import datetime

# Log levels
DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING
ERROR = logging.ERROR
CRITICAL = logging.CRITICAL

LOGGER_NAME = "vueschool"
DEFAULT_LOG_DIR = "logs"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Global logger instance
_logger = None


def setup_logger(level=logging.INFO, log_to_file=True, console_level=None, log_dir=DEFAULT_LOG_DIR):
    """
    Set up the logger with the specified configuration.

    Args:
        level (int): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file (bool): Whether to log to a file in addition to console
        console_level (int, optional): Separate logging level for console output.
                                      If None, uses the same level as 'level'.
        log_dir (str): Directory that receives the timestamped log file

    Returns:
        logging.Logger: Configured logger instance
    """
    global _logger

    if _logger is not None:
        return _logger

    _logger = logging.getLogger(LOGGER_NAME)
    _logger.setLevel(min(level, console_level) if console_level is not None else level)
    _logger.handlers = []
    _logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level if console_level is not None else level)
    console_handler.setFormatter(formatter)
    _logger.addHandler(console_handler)

    if log_to_file:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"vueschool_{timestamp}.log")

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    return _logger


def get_logger():
    """
    Get the configured logger instance, initializing it with defaults
    (console only) when nothing has called setup_logger yet.

    Returns:
        logging.Logger: Logger instance
    """
    if _logger is None:
        setup_logger(log_to_file=False)
    return _logger


def reset_logger():
    """Close all handlers and forget the configured logger."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            handler.close()
            _logger.removeHandler(handler)
    _logger = None


def debug(msg, *args, **kwargs):
    """Log a debug message."""
    get_logger().debug(msg, *args, **kwargs)


def info(msg, *args, **kwargs):
    """Log an info message."""
    get_logger().info(msg, *args, **kwargs)


def warning(msg, *args, **kwargs):
    """Log a warning message."""
    get_logger().warning(msg, *args, **kwargs)


def error(msg, *args, **kwargs):
    """Log an error message."""
    get_logger().error(msg, *args, **kwargs)


def critical(msg, *args, **kwargs):
    """Log a critical message."""
    get_logger().critical(msg, *args, **kwargs)
