# backend/core/logging.py

import logging
import sys
from typing import Iterable, Optional


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# httpx logs every DeepL request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(level_name: Optional[str] = None, quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """
    Configure application-wide logging.

    - Root level from `level_name` (normally Settings.LOG_LEVEL), INFO if unknown
    - One stdout handler; an existing configuration (uvicorn, pytest) is
      kept and only its level adjusted
    - Third-party loggers in `quiet` are held at WARNING
    """
    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root_logger.addHandler(handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Module logger; call `setup_logging` once at startup first."""
    return logging.getLogger(name)
