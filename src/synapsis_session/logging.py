"""Logging setup for command-line entry points.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are installed here, by the application. Logs go to stderr so
stdout stays free for command output.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Route the root logger to stderr at the given level."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stderr_handler)
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)
