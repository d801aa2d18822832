"""
Logging configuration for the BM to BMP tools.

The conversion modules only ask for loggers; a front end calls
setup_logging() once to decide where the records go.
"""

import logging
import sys
from typing import Optional

LOGGER_NAME = 'bmtobmp'


def setup_logging(level: str = 'WARNING',
                  log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``bmtobmp`` logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that receives the same records as stderr

    Returns:
        The configured logger
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning('Could not create log file %s: %s', log_file, e)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the logger for one module, e.g. get_logger('decoder')."""
    return logging.getLogger(f'{LOGGER_NAME}.{name}')
