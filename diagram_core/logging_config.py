"""
Logging configuration for the diagram_core namespace.

Library modules only create module loggers; hosts that want console or file
output call setup_logging() once at startup.
"""
import logging
import sys
from typing import Optional, TextIO

LOGGER_NAME = "diagram_core"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%H:%M:%S'


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    fmt: str = LOG_FORMAT,
    datefmt: Optional[str] = DATE_FORMAT,
    stream: Optional[TextIO] = None,
    file_mode: str = 'w'
) -> logging.Logger:
    """
    Configure the 'diagram_core' logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to also write logs to
        fmt: Record format shared by every handler
        datefmt: asctime format; None for the logging default
        stream: Console stream, stdout by default
        file_mode: 'w' to truncate log_file, 'a' to append

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt, datefmt=datefmt)
    _attach(logger, logging.StreamHandler(stream or sys.stdout), level, formatter)
    if log_file:
        _attach(logger, logging.FileHandler(log_file, mode=file_mode, encoding='utf-8'), level, formatter)

    logger.debug("Logging to %s", log_file or "console only")
    return logger
