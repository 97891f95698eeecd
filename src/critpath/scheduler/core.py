"""Core dataclasses for the scheduling system."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ..calendar import Calendar, resolve_calendar
from ..exceptions import CircularDependencyError, MissingReferenceError, ValidationError
from ..graph import IssueKind, ValidationIssue

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..graph import DependencyGraph
    from ..models import Task
    from .config import SchedulingConfig


def _default_str_list() -> list[str]:
    return []


def _default_errors() -> list[ScheduleError]:
    return []


class ErrorKind(str, Enum):
    """Why a scheduling call could not complete."""

    VALIDATION = "validation"
    CIRCULAR_DEPENDENCY = "circular_dependency"


@dataclass(frozen=True)
class ScheduleError:
    """A structured scheduling failure."""

    kind: ErrorKind
    message: str
    task_ids: list[str] = field(default_factory=_default_str_list)  # Cycle path for cycles
    issue: ValidationIssue | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ScheduleResult:
    """Outcome of one scheduling call.

    On failure ``tasks`` is the caller's input, unchanged.
    """

    tasks: list[Task]
    errors: list[ScheduleError] = field(default_factory=_default_errors)
    warnings: list[str] = field(default_factory=_default_str_list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def cycles(self) -> list[list[str]]:
        return [
            list(error.task_ids)
            for error in self.errors
            if error.kind is ErrorKind.CIRCULAR_DEPENDENCY
        ]

    def task(self, task_id: str) -> Task:
        """Look up a task in the result, raising KeyError if unknown."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise KeyError(task_id)

    def raise_for_errors(self) -> None:
        """Raise the matching exception if scheduling failed.

        Raises:
            CircularDependencyError: If any cycle was found
            MissingReferenceError: If every issue is an unknown reference
            ValidationError: For any other validation failure
        """
        if self.success:
            return

        cycles = self.cycles
        if cycles:
            described = "; ".join(" -> ".join(cycle) for cycle in cycles)
            raise CircularDependencyError(f"Circular dependency detected: {described}", cycles)

        issues = [error.issue for error in self.errors if error.issue is not None]
        lines = "\n".join(f"  - {error.message}" for error in self.errors)
        message = f"Validation failed:\n{lines}"
        if issues and all(issue.kind is IssueKind.MISSING_REFERENCE for issue in issues):
            raise MissingReferenceError(message, issues)
        raise ValidationError(message, issues)


@dataclass
class TaskDates:
    """Working copy of the computed dates of one task during a run."""

    earliest_start: dt.date
    earliest_finish: dt.date
    latest_start: dt.date | None = None
    latest_finish: dt.date | None = None


@dataclass
class ScheduleContext:
    """Everything a pass needs, resolved once per scheduling call."""

    graph: DependencyGraph
    calendar: Calendar
    calendars: Mapping[str, Calendar]
    config: SchedulingConfig
    project_start: dt.date

    def calendar_for(self, task_id: str) -> Calendar:
        """The calendar governing a task's own dates."""
        return resolve_calendar(self.graph.task(task_id), self.calendar, self.calendars)

    def duration(self, task_id: str) -> int:
        return self.graph.task(task_id).duration
