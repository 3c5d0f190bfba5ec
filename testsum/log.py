"""Logging setup for the testsum command.

Library modules only call ``logging.getLogger(__name__)``; the command line
driver installs the handler.
"""

import logging
import sys
from typing import Optional, TextIO

LOGGER_NAME = "testsum"
LOG_FORMAT = "%(levelname)s %(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(debug: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """Install a single stream handler on the ``testsum`` logger.

    Args:
        debug: Log debug messages (process arguments, pids) when True.
        stream: Destination stream. Default: stderr.

    Returns:
        The configured package logger.
    """
    global _handler

    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.propagate = False
    return logger
