from __future__ import annotations

import logging
import sys
from typing import Optional

LOG_PREFIX = "foundryup-init"


class PrefixFormatter(logging.Formatter):
    """Render records as single ``foundryup-init: ...`` lines.

    Warnings and errors carry an extra ``warning:`` / ``error:`` marker so
    they stand out from progress output.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.ERROR:
            message = f"error: {message}"
        elif record.levelno >= logging.WARNING:
            message = f"warning: {message}"
        return f"{LOG_PREFIX}: {message}"


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logging level based on CLI flags.

    Precedence:
    - quiet → WARNING
    - verbose → DEBUG
    - default → INFO
    """

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(PrefixFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-level logger."""

    return logging.getLogger(name if name is not None else __name__)
