"""Custom exceptions for Critpath."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .graph import ValidationIssue


class CritpathError(Exception):
    """Base exception for all Critpath errors."""

    pass


class ValidationError(CritpathError):
    """Raised when task, link or calendar validation fails."""

    def __init__(self, message: str, issues: list[ValidationIssue] | None = None):
        super().__init__(message)
        self.issues: list[ValidationIssue] = list(issues or [])


class CircularDependencyError(ValidationError):
    """Raised when one or more dependency cycles are detected."""

    def __init__(self, message: str, cycles: list[list[str]] | None = None):
        super().__init__(message)
        self.cycles: list[list[str]] = [list(cycle) for cycle in cycles or []]


class MissingReferenceError(ValidationError):
    """Raised when a referenced ID does not exist."""

    pass


class CalendarConfigurationError(CritpathError):
    """Raised when a calendar can never yield a working day."""

    pass


class ParseError(CritpathError):
    """Raised when YAML or interchange parsing fails."""

    pass
