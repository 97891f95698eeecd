"""Total float, free float and criticality."""

from __future__ import annotations

from datetime import date

from ..calendar import add_working_units, diff_working_units
from ..logger import get_logger
from ..models import Link, LinkType
from .core import ScheduleContext, TaskDates

logger = get_logger()


def free_float_gap(
    link: Link,
    pred: TaskDates,
    succ: TaskDates,
    context: ScheduleContext,
) -> int:
    """Working days the predecessor can slip before this link delays the successor.

    FS and SS compare against the successor's earliest start. FF and SF do
    too unless ``finish_anchored_free_float`` is set, in which case they
    compare against its earliest finish.
    """
    calendar = context.calendar_for(link.predecessor_id)
    link_type = link.link_type
    target: date = succ.earliest_start
    if link_type is LinkType.FS:
        candidate = add_working_units(pred.earliest_finish, link.lag + 1, calendar)
    elif link_type is LinkType.SS:
        candidate = add_working_units(pred.earliest_start, link.lag, calendar)
    elif link_type is LinkType.FF:
        candidate = add_working_units(pred.earliest_finish, link.lag, calendar)
        if context.config.finish_anchored_free_float:
            target = succ.earliest_finish
    elif link_type is LinkType.SF:
        candidate = add_working_units(pred.earliest_start, link.lag, calendar)
        if context.config.finish_anchored_free_float:
            target = succ.earliest_finish
    else:
        raise AssertionError(f"Unhandled link type: {link_type}")
    return max(0, diff_working_units(candidate, target, calendar))


def compute_floats(
    context: ScheduleContext, dates: dict[str, TaskDates]
) -> dict[str, tuple[int, int]]:
    """Return ``(total_float, free_float)`` per task id.

    A task without successors has free float equal to its total float.
    """
    floats: dict[str, tuple[int, int]] = {}
    for task_id, current in dates.items():
        assert current.latest_start is not None
        calendar = context.calendar_for(task_id)
        total_float = max(
            0, diff_working_units(current.earliest_start, current.latest_start, calendar)
        )

        links = context.graph.successors(task_id)
        if links:
            free_float = min(
                free_float_gap(link, current, dates[link.successor_id], context) for link in links
            )
        else:
            free_float = total_float

        floats[task_id] = (total_float, free_float)
        logger.debug(f"  {task_id}: TF={total_float} FF={free_float}")
    return floats
