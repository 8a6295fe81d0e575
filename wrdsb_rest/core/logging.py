"""
logging.py — Logging Setup for the User Lookup API

Purpose:
- One console stream for request handling, directory writes and
  authorization decisions.
- Keep library chatter (SQLAlchemy engine, uvicorn access lines) at
  WARNING unless the service itself runs at DEBUG.

Format: timestamp | level | module | message

Usage:
    from wrdsb_rest.core.logging import get_logger
    logger = get_logger(__name__)
    logger.info("User %s updated", user_id)
"""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that drown out directory activity at INFO
_LIBRARY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "passlib")


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once, at startup (main.py, scripts).

    Parameters:
        level (str): "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL";
            unknown names fall back to INFO.
    """
    resolved = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)

    library_level = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger(__name__).info("Logging initialized with level %s", logging.getLevelName(resolved))


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as get_logger(__name__)."""
    return logging.getLogger(name)
