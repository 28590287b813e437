"""
Logging setup.

Every module logs through ``logging.getLogger(__name__)``. This
module installs one stream handler on the ``back_office`` logger
so that service messages show up with a timestamp and the module
that emitted them.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Attach the application handler. Safe to call more than once."""
    global _configured

    root = logging.getLogger("back_office")
    root.setLevel(level)

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    _configured = True
