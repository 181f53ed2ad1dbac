"""teleterm logging configuration.

Log output goes to stderr, or to `TELETERM_LOG_FILE` when it is set. An attached
console session owns stdout, so logs must never be written there.
Example: `TELETERM_LOG_LEVEL=DEBUG TELETERM_LOG_FILE=/tmp/teleterm.log teleterm attach`.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured_handler: logging.Handler | None = None


def setup_logging(level: Optional[str] = None) -> None:
    """Configure teleterm logging.

    Safe to call more than once; the previous handler is replaced.

    Args:
        level: Optional override for `TELETERM_LOG_LEVEL`.
    """
    global _configured_handler  # pylint: disable=global-statement

    if level:
        os.environ["TELETERM_LOG_LEVEL"] = level

    level_name = os.environ.get("TELETERM_LOG_LEVEL", "INFO").upper()
    log_file = os.environ.get("TELETERM_LOG_FILE")

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("teleterm")
    if _configured_handler is not None:
        root.removeHandler(_configured_handler)
        _configured_handler.close()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))
    _configured_handler = handler
