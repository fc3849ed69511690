"""
Logging setup for repolens.

All modules log through children of the ``repolens`` logger so a single
handler installed here covers the whole service.
"""

import logging

_root_logger = logging.getLogger("repolens")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    level: int | str = logging.INFO,
    handler: logging.Handler | None = None,
    format_string: str | None = None,
) -> None:
    """
    Configure the ``repolens`` logger.

    Args:
        level: Log level name or number (default: INFO)
        handler: Custom handler (default: StreamHandler to stderr)
        format_string: Custom format string (default: timestamp, name, level, message)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if handler is None:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))

    # Calling twice (tests, reload) must not duplicate output.
    for existing in list(_root_logger.handlers):
        _root_logger.removeHandler(existing)

    _root_logger.setLevel(level)
    _root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the ``repolens`` logger or one of its children."""
    if name is None:
        return _root_logger
    if name.startswith("repolens"):
        return logging.getLogger(name)
    return logging.getLogger(f"repolens.{name}")
