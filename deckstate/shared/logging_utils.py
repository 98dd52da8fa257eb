"""
Logging utilities for the editor engine.

Component loggers live under the ``deckstate`` namespace, so a single level
on ``logging.getLogger("deckstate")`` covers the whole engine.
"""
import logging

from .config import config

LOGGER_NAMESPACE = "deckstate"


def setup_logging(component: str, log_level: str | None = None) -> logging.Logger:
    """
    Create or fetch the logger for an engine component.

    Args:
        component: Short component name, shown in every log line
        log_level: Logging level name; defaults to the configured ``log_level``

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")
    level_name = (log_level or config.get("log_level", "INFO")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(f"%(asctime)s - {component} - %(levelname)s - %(message)s")
        )
        logger.addHandler(handler)

    return logger
