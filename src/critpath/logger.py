"""Logging configuration for Critpath with custom verbosity levels."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

# Custom levels sit between the standard ones
CHANGES_LEVEL = 25  # Between INFO (20) and WARNING (30) - for verbosity level 1
CHECKS_LEVEL = 15  # Between DEBUG (10) and INFO (20) - for verbosity level 2

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

VERBOSITY_SILENT = 0  # Errors only; schedule warnings stay on the result
VERBOSITY_CHANGES = 1  # Schedule summary, warnings, shifts, calendar edits
VERBOSITY_CHECKS = 2  # Per-task pass dates, validation issues, conflict counts
VERBOSITY_DEBUG = 3  # Per-link candidate dates, floats, clamped latest starts


class CritpathLogger(logging.Logger):
    """Logger for scheduling and leveling output.

    - changes(): "Scheduled 4 task(s), 3 critical", proposed and applied
      shifts, calendar exceptions being added
    - checks(): "Forward: A ES=... EF=..." and "Backward: ..." per task,
      validation issues and cycles, over-allocation counts, rejected shift
      candidates
    - debug(): each link's candidate date, per-task TF/FF, latest starts
      clamped to the earliest start
    """

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a result the user acted on or should see (verbosity 1)."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log intermediate pass and leveling results (verbosity 2)."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> CritpathLogger:
    """Get the critpath logger instance (singleton).

    Use setup_logger() to configure it before first use.
    """
    logging.setLoggerClass(CritpathLogger)
    logger = logging.getLogger("critpath")
    assert isinstance(logger, CritpathLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Configure the critpath logger with verbosity level.

    Can be called multiple times to reconfigure the logger.

    Args:
        verbosity: 0=silent (errors only), 1=changes, 2=checks, 3=debug
        stream: Optional output stream (defaults to sys.stderr, useful for testing)
    """
    logger = get_logger()
    logger.handlers.clear()

    level_map = {
        VERBOSITY_SILENT: logging.ERROR,
        VERBOSITY_CHANGES: CHANGES_LEVEL,
        VERBOSITY_CHECKS: CHECKS_LEVEL,
        VERBOSITY_DEBUG: logging.DEBUG,
    }
    logger.setLevel(level_map.get(verbosity, logging.ERROR))

    output_stream = stream if stream is not None else sys.stderr

    # Clean formatting (no level prefix)
    handler = logging.StreamHandler(output_stream)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Reset the logger to clean state (used between tests)."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)


def is_silent() -> bool:
    """Check if logger is in silent mode (verbosity == 0)."""
    return get_logger().level >= logging.ERROR


def changes_enabled() -> bool:
    """Check if changes-level logging is enabled (verbosity >= 1)."""
    return get_logger().isEnabledFor(CHANGES_LEVEL)


def checks_enabled() -> bool:
    """Check if checks-level logging is enabled (verbosity >= 2)."""
    return get_logger().isEnabledFor(CHECKS_LEVEL)


def debug_enabled() -> bool:
    """Check if debug-level logging is enabled (verbosity >= 3)."""
    return get_logger().isEnabledFor(logging.DEBUG)
