"""Global CLI context: settings given once on the command line."""

from __future__ import annotations

from pathlib import Path


class _CliContext:
    """Holds options set by the top-level CLI callback."""

    def __init__(self) -> None:
        self.config_path: Path | None = None


# Singleton instance
_context = _CliContext()


def get_config_path() -> Path | None:
    """Config file passed with ``--config``, if any."""
    return _context.config_path


def set_config_path(path: Path | None) -> None:
    """Record the config file passed with ``--config``."""
    _context.config_path = path


def reset() -> None:
    """Forget all CLI-provided settings (used between tests)."""
    _context.config_path = None
