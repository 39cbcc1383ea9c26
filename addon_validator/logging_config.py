"""
Logging configuration for the Addon Compatibility Validator.

All package loggers hang off the ``addon_validator`` logger. Progress is written
to stderr so stdout stays free for rendered results.
"""

import logging
import sys
from typing import IO, Optional

PACKAGE_LOGGER = 'addon_validator'

DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
BRIEF_FORMAT = '%(levelname)s - %(message)s'

# requests logs every connection through urllib3
NOISY_LOGGERS = ('urllib3',)


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps the level name in an ANSI colour."""

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelname) if self.use_color else None
        if color is None:
            return super().format(record)
        # Other handlers receive the same record, so colour a copy
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None, verbose: bool = False,
                  stream: Optional[IO] = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that receives every record at DEBUG level
        verbose: Use the detailed console format with logger names and line numbers
        stream: Console stream, defaults to stderr

    Returns:
        The configured ``addon_validator`` logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    stream = stream or sys.stderr

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ColoredFormatter(
        DETAILED_FORMAT if verbose else BRIEF_FORMAT,
        use_color=hasattr(stream, 'isatty') and stream.isatty(),
    ))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING)

    return logger


def setup_logging_from_config(logging_config) -> logging.Logger:
    """Configure logging from a LoggingConfig section."""
    return setup_logging(
        level=logging_config.level,
        log_file=logging_config.log_file,
        verbose=logging_config.verbose,
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for a component, nested under the package logger."""
    return logging.getLogger(f'{PACKAGE_LOGGER}.{name}')
