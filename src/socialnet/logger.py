import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import settings


def setup_api_logger(
    level: Optional[str] = None, log_path: Optional[str] = None
) -> logging.Logger:
    """Set up and return the application-wide ``socialnet`` logger.

    Logs go to stderr and, when ``log_path`` (or ``LOG_FILE``) is set, to a
    rotating file as well.
    """
    logger = logging.getLogger("socialnet")
    logger.setLevel((level or settings.log_level).upper())

    # avoid adding multiple handlers if called multiple times
    if not logger.handlers:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        logger.addHandler(stream)

        log_path = log_path or settings.log_file
        if log_path:
            handler = RotatingFileHandler(
                log_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    return logger
