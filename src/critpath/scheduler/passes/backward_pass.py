"""Backward pass: latest start and finish dates."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from ...calendar import Calendar, add_working_units, snap_to_working_day
from ...logger import get_logger
from ...models import LinkType
from ..config import TerminalAnchor
from ..core import ScheduleContext, TaskDates

if TYPE_CHECKING:
    from ...models import Link

logger = get_logger()


def backward_candidate(
    link: Link,
    successor_latest_start: date,
    successor_latest_finish: date,
    successor_calendar: Calendar,
) -> tuple[date, bool]:
    """Latest date the predecessor may reach under one link.

    Returns the date and whether it bounds the predecessor's finish (True)
    or its start (False). Arithmetic happens in the successor's calendar.
    """
    link_type = link.link_type
    if link_type is LinkType.FS:
        return add_working_units(successor_latest_start, -(link.lag + 1), successor_calendar), True
    if link_type is LinkType.SS:
        return add_working_units(successor_latest_start, -link.lag, successor_calendar), False
    if link_type is LinkType.FF:
        return add_working_units(successor_latest_finish, -link.lag, successor_calendar), True
    if link_type is LinkType.SF:
        return add_working_units(successor_latest_finish, -link.lag, successor_calendar), False
    raise AssertionError(f"Unhandled link type: {link_type}")


class BackwardPass:
    """Computes latest dates in reverse topological order.

    Every link candidate is turned into a latest start in the task's own
    calendar (snapped back to a working day) and the minimum wins. The
    latest start never precedes the earliest start.
    """

    def __init__(self, context: ScheduleContext):
        self.context = context

    def run(self, order: list[str], dates: dict[str, TaskDates]) -> None:
        """Fill ``latest_start``/``latest_finish`` into ``dates`` in place."""
        project_finish = max((d.earliest_finish for d in dates.values()), default=None)

        for task_id in reversed(order):
            current = dates[task_id]
            calendar = self.context.calendar_for(task_id)
            duration = self.context.duration(task_id)

            links = self.context.graph.successors(task_id)
            if links:
                latest_start = min(
                    self._latest_start_for(link, dates, calendar, duration) for link in links
                )
            else:
                anchor = current.earliest_finish
                if (
                    self.context.config.terminal_anchor is TerminalAnchor.PROJECT_FINISH
                    and project_finish is not None
                ):
                    anchor = project_finish
                latest_start = self._from_finish(anchor, calendar, duration)

            if latest_start < current.earliest_start:
                logger.debug(
                    f"  {task_id}: LS {latest_start.isoformat()} clamped to "
                    f"ES {current.earliest_start.isoformat()}"
                )
                latest_start = current.earliest_start
            current.latest_start = latest_start
            current.latest_finish = add_working_units(latest_start, duration - 1, calendar)
            logger.checks(
                f"Backward: {task_id} LS={latest_start.isoformat()} "
                f"LF={current.latest_finish.isoformat()}"
            )

    def _latest_start_for(
        self, link: Link, dates: dict[str, TaskDates], calendar: Calendar, duration: int
    ) -> date:
        succ = dates[link.successor_id]
        assert succ.latest_start is not None and succ.latest_finish is not None
        candidate, bounds_finish = backward_candidate(
            link,
            succ.latest_start,
            succ.latest_finish,
            self.context.calendar_for(link.successor_id),
        )
        if bounds_finish:
            latest_start = self._from_finish(candidate, calendar, duration)
        else:
            latest_start = snap_to_working_day(candidate, calendar, backward=True)
        logger.debug(f"  {link}: latest start <= {latest_start.isoformat()}")
        return latest_start

    @staticmethod
    def _from_finish(latest_finish: date, calendar: Calendar, duration: int) -> date:
        finish = snap_to_working_day(latest_finish, calendar, backward=True)
        return add_working_units(finish, -(duration - 1), calendar)
