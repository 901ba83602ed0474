"""Logging setup for the civicops command line."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# client libraries log every request at INFO
CHATTY_LOGGERS = ("httpx", "httpcore", "neo4j", "alembic.runtime.migration")


def resolve_log_level(*, verbose: bool = False) -> int:
    """Pick the root level: ``--verbose`` wins, then ``CIVICOPS_LOG_LEVEL``, then INFO."""

    if verbose:
        return logging.DEBUG
    name = (os.getenv("CIVICOPS_LOG_LEVEL") or "").strip().upper()
    if not name:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(name)
    if level is None:
        raise ConfigurationError(
            f"CIVICOPS_LOG_LEVEL must be a logging level name, got {name!r}",
            settings=["CIVICOPS_LOG_LEVEL"],
        )
    return level


def configure_logging(*, verbose: bool = False, force: bool = False) -> int:
    level = resolve_log_level(verbose=verbose)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return level
