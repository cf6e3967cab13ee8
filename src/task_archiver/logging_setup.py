"""Logging configuration for the daemon and one-shot commands."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(threadName)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | int = logging.INFO) -> None:
    """Send all records to stderr with timestamps. Call once, early.

    When the root logger already has handlers (an embedding application or
    a test harness configured logging) only the level is applied.
    """

    root = logging.getLogger()
    root.setLevel(level if isinstance(level, int) else level.upper())

    # Alembic logs every migration step at INFO.
    logging.getLogger("alembic").setLevel(logging.WARNING)

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    logging.captureWarnings(True)
