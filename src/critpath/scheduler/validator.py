"""Pre-flight checks run before either scheduling pass."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..calendar import Calendar, validate_calendar
from ..exceptions import CalendarConfigurationError
from ..graph import detect_cycles, validate
from ..logger import get_logger
from .core import ErrorKind, ScheduleError

logger = get_logger()

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..models import Link, Task


class ScheduleInputValidator:
    """Checks calendars, tasks and links for a scheduling call.

    Calendar problems raise immediately since no date arithmetic is safe
    on a broken calendar. Task and link problems come back as
    ``ScheduleError`` values so the caller gets all of them at once.
    """

    def __init__(self, calendar: Calendar, calendars: Mapping[str, Calendar] | None = None):
        """Initialize validator with the project calendar and named calendars.

        Args:
            calendar: Project default calendar
            calendars: Optional per-task calendars keyed by id
        """
        self.calendar = calendar
        self.calendars = dict(calendars or {})

    def check_calendars(self) -> None:
        """Raise CalendarConfigurationError for any unusable calendar."""
        problems = list(validate_calendar(self.calendar))
        for calendar in self.calendars.values():
            problems.extend(validate_calendar(calendar))
        if problems:
            raise CalendarConfigurationError("; ".join(problems))

    def check_graph(self, tasks: list[Task], links: list[Link]) -> list[ScheduleError]:
        """Validation issues first; cycles only once the graph is well formed."""
        issues = validate(tasks, links, self.calendars)
        if issues:
            for issue in issues:
                logger.checks(f"Validation: {issue.message}")
            return [
                ScheduleError(ErrorKind.VALIDATION, issue.message, issue=issue) for issue in issues
            ]

        errors: list[ScheduleError] = []
        for cycle in detect_cycles(links):
            logger.checks(f"Cycle: {' -> '.join(cycle)}")
            errors.append(
                ScheduleError(
                    ErrorKind.CIRCULAR_DEPENDENCY,
                    f"Circular dependency: {' -> '.join(cycle)}",
                    task_ids=cycle,
                )
            )
        return errors
