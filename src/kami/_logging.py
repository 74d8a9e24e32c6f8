"""Logging configuration for kami.

Usage in other modules:
    import logging
    log = logging.getLogger(__name__)

The log level can be configured via the KAMI_LOG_LEVEL environment variable:
    - DEBUG: Detailed debugging information (e.g. files skipped during reindex)
    - INFO: General operational messages (default)
    - WARNING: Unexpected situations that were handled
    - ERROR: Errors that prevented an operation
"""

import logging
import os
import sys

_quiet_mode = False


def configure_logging() -> None:
    """Configure logging for the kami package.

    Call this once at application startup (e.g., in cli.py).
    Subsequent calls are no-ops.
    """
    root_logger = logging.getLogger("kami")

    if root_logger.handlers:
        return

    level_name = os.environ.get("KAMI_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    if _quiet_mode:
        level = max(level, logging.ERROR)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="[%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Prevent propagation to root logger (avoids duplicate messages)
    root_logger.propagate = False


def set_quiet_mode(quiet: bool) -> None:
    """Suppress warnings, keeping only errors on stderr."""
    global _quiet_mode
    _quiet_mode = quiet

    root_logger = logging.getLogger("kami")
    level = logging.ERROR if quiet else logging.INFO
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)
