"""
Structured logging for lohigh.

Keeps the CLI visual style ([*], [!], [✓], [✗]) on top of the standard
logging module. Library modules only obtain loggers; nothing is printed
until the command-line front end calls configure_logging(). Output goes to
stderr because stdout may carry WAV data.

Environment Variables:
    LOHIGH_LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                      Defaults to INFO if not set
"""

import logging
import os
import sys
from typing import Optional, TextIO


ROOT_LOGGER_NAME = "lohigh"

# Custom log level for SUCCESS messages
SUCCESS = 25  # Between INFO (20) and WARNING (30)
logging.addLevelName(SUCCESS, "SUCCESS")


class LohighFormatter(logging.Formatter):
    """
    Formatter that maps log levels to visual prefixes:
        DEBUG    -> [·]
        INFO     -> [*]
        SUCCESS  -> [✓]
        WARNING  -> [!]
        ERROR    -> [✗]
        CRITICAL -> [✗✗]
    """

    PREFIX_MAP = {
        "DEBUG": "[·]",
        "INFO": "[*]",
        "SUCCESS": "[✓]",
        "WARNING": "[!]",
        "ERROR": "[✗]",
        "CRITICAL": "[✗✗]",
    }

    def __init__(self, include_module: bool = False):
        """
        Initialize formatter.

        Args:
            include_module: If True, include module name in output (for debugging)
        """
        self.include_module = include_module
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with visual prefix."""
        prefix = self.PREFIX_MAP.get(record.levelname, "[?]")

        if self.include_module:
            module = record.name.replace("lohigh.", "").replace("__main__", "main")
            return f"{prefix} [{module}] {record.getMessage()}"
        return f"{prefix} {record.getMessage()}"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``lohigh`` namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance; it emits nothing until configure_logging() runs

    Example:
        >>> from lohigh.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("Reading input A")
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def log_success(logger: logging.Logger, message: str) -> None:
    """
    Log a success message with [✓] prefix.

    Args:
        logger: Logger instance
        message: Success message
    """
    logger.log(SUCCESS, message)


def configure_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Attach a console handler to the ``lohigh`` logger.

    Call once at application startup. Calling again replaces the handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
               If None, uses LOHIGH_LOG_LEVEL environment variable
        stream: Output stream, defaults to sys.stderr

    Returns:
        The configured package logger
    """
    level_name = (level or os.environ.get("LOHIGH_LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if not isinstance(handler, logging.NullHandler):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(LohighFormatter(include_module=numeric_level == logging.DEBUG))

    root.addHandler(handler)
    root.setLevel(numeric_level)

    # Don't propagate to the root logger (avoid duplicate messages)
    root.propagate = False

    return root
