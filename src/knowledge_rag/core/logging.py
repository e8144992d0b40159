"""Logging configuration."""

import logging
import sys

from knowledge_rag.config import get_settings


def setup_logging(level: str | None = None) -> None:
    """Configure application logging.

    Args:
        level: Optional level overriding the configured ``log_level``.
    """
    settings = get_settings()

    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        logging.Logger: Configured logger instance.
    """
    return logging.getLogger(name)
