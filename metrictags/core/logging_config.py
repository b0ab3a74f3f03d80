import os
import logging
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from metrictags.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger for a host process.

    The library never calls this itself; it only logs through get_logger().

    Args:
        level: Logging level name (default: settings.LOG_LEVEL)
        log_file: Optional path of a rotating log file (default: settings.LOG_FILE)
    """
    level = (level or settings.LOG_LEVEL).upper()
    log_file = log_file if log_file is not None else settings.LOG_FILE

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=(10 * 1024 * 1024),   # 10MB per file
                backupCount=7,                 # Last 7 rotated logs kept
                encoding="utf-8"
            )
        )

    # Python 'logging' root config
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger with the given module name."""
    return logging.getLogger(name)
