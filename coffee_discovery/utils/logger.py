"""
Logging configuration for Coffee Discovery.

Every module logs through a child of the "coffee_discovery" logger so a single
LOG_LEVEL environment variable controls the whole package. Query-log writes run
on "best-effort" worker threads, so the thread name is part of each line.
"""
import logging
import os
import sys

ROOT_NAME = "coffee_discovery"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s [%(threadName)s] - %(message)s"

logger = logging.getLogger(ROOT_NAME)
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(console_handler)

# Uvicorn configures the root logger too
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a package logger.

    Args:
        name: Dotted suffix such as "core.search", or a module __name__ that
            already starts with "coffee_discovery"

    Returns:
        Logger instance
    """
    if not name:
        return logger
    if name == ROOT_NAME or name.startswith(ROOT_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_NAME}.{name}")
