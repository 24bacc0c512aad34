"""stderr logging for the random-mac CLI and web API."""
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: int = logging.INFO) -> None:
    """Attach one stderr handler to the ``randommac`` logger and set its level.

    ``main`` calls this after parsing ``--verbose``; calling it again (tests
    run ``main`` many times) changes the level without stacking handlers.
    """
    logger = logging.getLogger("randommac")
    logger.setLevel(level)
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    # parser, storage, engine, ... log as randommac.<name>
    return logging.getLogger(f"randommac.{name}")
