"""Forward pass: earliest start and finish dates."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from ...calendar import Calendar, add_working_units, snap_to_working_day
from ...logger import get_logger
from ...models import LinkType
from ..core import ScheduleContext, TaskDates

if TYPE_CHECKING:
    from ...models import Link

logger = get_logger()


def forward_candidate(
    link: Link,
    predecessor_start: date,
    predecessor_finish: date,
    successor_duration: int,
    predecessor_calendar: Calendar,
) -> date:
    """Earliest successor start allowed by one link.

    Arithmetic happens in the predecessor's calendar. FF and SF constrain
    the successor's finish, so the start is back-solved from it.
    """
    link_type = link.link_type
    if link_type is LinkType.FS:
        return add_working_units(predecessor_finish, link.lag + 1, predecessor_calendar)
    if link_type is LinkType.SS:
        return add_working_units(predecessor_start, link.lag, predecessor_calendar)
    if link_type is LinkType.FF:
        offset = link.lag - successor_duration + 1
        return add_working_units(predecessor_finish, offset, predecessor_calendar)
    if link_type is LinkType.SF:
        offset = link.lag - successor_duration + 1
        return add_working_units(predecessor_start, offset, predecessor_calendar)
    raise AssertionError(f"Unhandled link type: {link_type}")


class ForwardPass:
    """Computes earliest dates in topological order.

    A task without predecessors starts on its own ``start`` (or the project
    start). With predecessors, the latest link candidate wins, and the
    task's own ``start`` acts as a start-no-earlier-than bound.
    """

    def __init__(self, context: ScheduleContext):
        self.context = context
        self.warnings: list[str] = []

    def run(self, order: list[str]) -> dict[str, TaskDates]:
        """Return earliest dates for every task id in ``order``."""
        dates: dict[str, TaskDates] = {}
        for task_id in order:
            task = self.context.graph.task(task_id)
            calendar = self.context.calendar_for(task_id)
            candidate = self._earliest_candidate(task_id, dates)

            earliest_start = snap_to_working_day(candidate, calendar)
            if earliest_start != candidate and not self.context.graph.predecessors(task_id):
                self.warnings.append(
                    f"Task '{task_id}': {candidate.isoformat()} is not a working day, "
                    f"starting {earliest_start.isoformat()}"
                )
            earliest_finish = add_working_units(earliest_start, task.duration - 1, calendar)
            dates[task_id] = TaskDates(earliest_start, earliest_finish)
            logger.checks(
                f"Forward: {task_id} ES={earliest_start.isoformat()} "
                f"EF={earliest_finish.isoformat()}"
            )
        return dates

    def _earliest_candidate(self, task_id: str, dates: dict[str, TaskDates]) -> date:
        task = self.context.graph.task(task_id)
        links = self.context.graph.predecessors(task_id)
        if not links:
            return task.start or self.context.project_start

        candidates: list[date] = []
        for link in links:
            pred = dates[link.predecessor_id]
            candidate = forward_candidate(
                link,
                pred.earliest_start,
                pred.earliest_finish,
                task.duration,
                self.context.calendar_for(link.predecessor_id),
            )
            logger.debug(f"  {link}: start >= {candidate.isoformat()}")
            candidates.append(candidate)
        if task.start is not None:
            logger.debug(f"  {task_id}: own start >= {task.start.isoformat()}")
            candidates.append(task.start)
        return max(candidates)
