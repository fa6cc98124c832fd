# greentrack/util/logging.py
from __future__ import annotations

import datetime
import logging
import sys

LOGGER_NAME = "greentrack"
_FORMAT = "%(asctime)s  %(levelname)-7s %(name)s: %(message)s"


def utc_now_iso() -> str:
    """Return current UTC timestamp as ISO-8601 string."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace (``greentrack.<name>``)."""
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def configure_logging(level: int | str = logging.INFO) -> None:
    """
    Install a stderr handler on the package logger.

    Library code never calls this; CLI entry points do. Calling it twice
    replaces the previous handler instead of stacking another one.
    """
    root = logging.getLogger(LOGGER_NAME)
    for h in list(root.handlers):
        if getattr(h, "_greentrack", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    handler._greentrack = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)
