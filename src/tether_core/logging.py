# tether_core/logging.py
"""
Logging setup shared by every tether package.

Library modules only ask for loggers:
    from tether_core.logging import get_logger
    logger = get_logger(__name__)

Handlers, format and level are installed once by configure_logging(),
normally from the demo entrypoint.
"""

import logging
import sys

DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _coerce_level(level) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level!r}")
    return value


def configure_logging(
    level=logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    stream=None,
):
    """
    Configure the root logging handler.

    Repeated calls only adjust the level; a second handler is never added.
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
        handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(handler)

    root.setLevel(_coerce_level(level))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
