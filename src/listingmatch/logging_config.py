"""Logging setup for applications embedding the matching pipeline."""

from __future__ import annotations

import logging

from .config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_ROOT_LOGGER = "listingmatch"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a stream handler to the ``listingmatch`` logger.

    Safe to call more than once: the handler is only added the first time,
    later calls just update the level.
    """
    name = (level or settings.log_level).upper()
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(getattr(logging, name, logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
