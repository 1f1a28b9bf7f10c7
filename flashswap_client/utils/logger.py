"""Logging setup for the flashswap client."""

import logging
from logging import Logger

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "flashswap_client"
LOG_FORMAT = "%(name)s: %(message)s"


def get_logger(name: str = LOGGER_NAME, level: int | str = logging.INFO) -> Logger:
    """Get a logger rendering through rich on stderr. Handlers are attached once per logger name."""

    logger = logging.getLogger(name)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        # stdout is reserved for command output
        handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(level)
    return logger
