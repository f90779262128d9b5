"""Centralized logging configuration for the GitDash application."""

import logging
import sys
from typing import Literal

from gitdash.config import get_settings


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None
) -> None:
    """Configure logging for the application.

    Args:
        level: Override log level (default: INFO in production, DEBUG elsewhere)

    Third-party loggers that chatter on every request are capped at WARNING.
    """
    settings = get_settings()

    if level is None:
        level = "INFO" if settings.is_production else "DEBUG"

    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("watchfiles").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger that inherits the handlers installed by ``setup_logging``
    """
    return logging.getLogger(name)


class LogContext:
    """Prefixes log messages with ``[key=value]`` pairs.

    Used by the proxy handlers so every line about an upstream call names
    the repository it concerns.
    """

    def __init__(self, logger: logging.Logger, **context: object) -> None:
        """Bind context to a logger.

        Args:
            logger: The logger to write to
            **context: Key-value pairs rendered before every message
        """
        self.logger = logger
        self.context = context
        self.prefix = " ".join(f"[{k}={v}]" for k, v in context.items())

    def debug(self, msg: str, *args, **kwargs) -> None:
        """Log a debug message with the bound context."""
        self.logger.debug(f"{self.prefix} {msg}", *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        """Log an info message with the bound context."""
        self.logger.info(f"{self.prefix} {msg}", *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        """Log a warning message with the bound context."""
        self.logger.warning(f"{self.prefix} {msg}", *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        """Log an error message with the bound context."""
        self.logger.error(f"{self.prefix} {msg}", *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs) -> None:
        """Log an error with the bound context and the current traceback."""
        self.logger.exception(f"{self.prefix} {msg}", *args, **kwargs)
