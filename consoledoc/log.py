"""Library loggers.

Every module logs under the ``consoledoc`` namespace.  The package logger
carries a NullHandler, so records reach whatever handlers the host
application configures and nothing is printed when it configures none.
"""
from __future__ import annotations

import logging
from typing import Optional

PACKAGE_LOGGER = "consoledoc"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the logger for ``name``, defaulting to the package logger."""
    return logging.getLogger(name or PACKAGE_LOGGER)
