"""Logging setup for the photobooth service."""

import logging
from typing import Optional

from photobooth.config import settings

LOG_FORMAT = "%(levelname)s: %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach one stream handler to the ``photobooth`` logger.

    The level defaults to ``PHOTOBOOTH_LOG_LEVEL``. Calling again only
    updates the level.
    """
    logger = logging.getLogger("photobooth")
    logger.setLevel((level or settings.log_level).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    return logger
