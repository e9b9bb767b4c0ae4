"""Logging setup for the billing services.

Every module asks for a logger through :func:`get_logger` so all records
live under the ``tutorbill`` namespace and can be tuned in one place.
"""

import logging
import sys

_ROOT_LOGGER_NAME = "tutorbill"
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``tutorbill``."""
    if name.startswith(_ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str | int = "INFO", stream=None) -> logging.Logger:
    """Attach a single stream handler to the ``tutorbill`` logger.

    Calling this more than once only updates the level.
    """
    global _configured
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    if not _configured:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        root.addHandler(handler)
        root.propagate = False
        _configured = True
    return root


def reset_logging() -> None:
    """Remove handlers installed by :func:`configure_logging` (used by tests)."""
    global _configured
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True
    _configured = False
