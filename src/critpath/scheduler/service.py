"""High-level scheduling service."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING

from ..calendar import Calendar
from ..graph import DependencyGraph
from ..logger import get_logger
from .config import SchedulingConfig
from .core import ScheduleContext, ScheduleResult
from .floats import compute_floats
from .passes import BackwardPass, ForwardPass
from .validator import ScheduleInputValidator

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..models import Link, Task

logger = get_logger()


class CriticalPathScheduler:
    """Critical-path scheduler over typed, lagged dependency links.

    This service coordinates:
    - ScheduleInputValidator (calendars, references, link types, cycles)
    - ForwardPass (earliest dates)
    - BackwardPass (latest dates)
    - compute_floats (total/free float and criticality)

    The scheduler holds configuration only. Each ``schedule()`` call is a
    pure function of its arguments and returns new Task objects.
    """

    def __init__(
        self,
        calendar: Calendar | None = None,
        calendars: Mapping[str, Calendar] | None = None,
        config: SchedulingConfig | None = None,
    ):
        """Initialize scheduler.

        Args:
            calendar: Project default calendar (Mon-Fri, no holidays if omitted)
            calendars: Optional per-task calendars keyed by id
            config: Optional scheduling configuration
        """
        self.calendar = calendar or Calendar()
        self.calendars = dict(calendars or {})
        self.config = config or SchedulingConfig()
        self.validator = ScheduleInputValidator(self.calendar, self.calendars)

    def schedule(self, tasks: list[Task], links: list[Link]) -> ScheduleResult:
        """Run validation and both passes.

        Returns:
            ScheduleResult with annotated copies of the tasks, or the input
            tasks plus errors when validation or cycle detection fails

        Raises:
            CalendarConfigurationError: If a calendar has no working days
        """
        self.validator.check_calendars()

        errors = self.validator.check_graph(tasks, links)
        if errors:
            logger.checks(f"Scheduling aborted with {len(errors)} error(s)")
            return ScheduleResult(tasks=list(tasks), errors=errors)

        graph = DependencyGraph(tasks, links)
        order = graph.topological_order()
        context = ScheduleContext(
            graph=graph,
            calendar=self.calendar,
            calendars=self.calendars,
            config=self.config,
            project_start=self.config.project_start or date.today(),  # noqa: DTZ011
        )

        forward = ForwardPass(context)
        dates = forward.run(order)
        BackwardPass(context).run(order, dates)
        floats = compute_floats(context, dates)

        scheduled: list[Task] = []
        for task in tasks:
            current = dates[task.id]
            total_float, free_float = floats[task.id]
            scheduled.append(
                replace(
                    task,
                    earliest_start=current.earliest_start,
                    earliest_finish=current.earliest_finish,
                    latest_start=current.latest_start,
                    latest_finish=current.latest_finish,
                    total_float=total_float,
                    free_float=free_float,
                    is_critical=total_float == 0,
                )
            )

        critical = sum(1 for task in scheduled if task.is_critical)
        logger.changes(f"Scheduled {len(scheduled)} task(s), {critical} critical")
        for warning in forward.warnings:
            logger.warning(warning)
        return ScheduleResult(tasks=scheduled, warnings=list(forward.warnings))


def schedule(
    tasks: list[Task],
    links: list[Link],
    calendar: Calendar | None = None,
    calendars: Mapping[str, Calendar] | None = None,
    config: SchedulingConfig | None = None,
) -> ScheduleResult:
    """Schedule tasks in one call (see ``CriticalPathScheduler``)."""
    return CriticalPathScheduler(calendar, calendars, config).schedule(tasks, links)
