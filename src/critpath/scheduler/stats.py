"""Critical-path and float reporting over scheduled tasks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from ..calendar import Calendar, resolve_calendar
from .passes import forward_candidate

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..models import Link, Task

LOW_FLOAT_THRESHOLD = 3
VERY_LOW_FLOAT_THRESHOLD = 1


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class CriticalPathStats:
    """Summary of the critical tasks in a schedule."""

    critical_count: int
    total_count: int
    percentage: int
    duration_days: int  # Calendar days from first critical start to last critical finish
    start: date | None = None
    finish: date | None = None


@dataclass
class FloatSummary:
    """Distribution of float across a schedule."""

    total_tasks: int
    with_total_float: int
    with_free_float: int
    critical_tasks: int
    low_float_tasks: int
    good_float_tasks: int
    average_total_float: int
    average_free_float: int


def is_driving(
    link: Link,
    tasks_by_id: Mapping[str, Task],
    calendar: Calendar,
    calendars: Mapping[str, Calendar] | None = None,
) -> bool:
    """True if the link alone determines the successor's earliest start."""
    pred = tasks_by_id.get(link.predecessor_id)
    succ = tasks_by_id.get(link.successor_id)
    if pred is None or succ is None:
        return False
    if pred.earliest_start is None or pred.earliest_finish is None or succ.earliest_start is None:
        return False
    candidate = forward_candidate(
        link,
        pred.earliest_start,
        pred.earliest_finish,
        succ.duration,
        resolve_calendar(pred, calendar, calendars),
    )
    return candidate >= succ.earliest_start


def critical_path(
    tasks: list[Task],
    links: list[Link],
    calendar: Calendar | None = None,
    calendars: Mapping[str, Calendar] | None = None,
) -> list[list[str]]:
    """Ordered chains of critical tasks joined by driving links.

    A chain starts at a critical task that no critical driving link enters
    and follows driving links to a task with none leaving it. Branches
    produce one chain per path. A critical task with no driving links is a
    chain of its own.
    """
    calendar = calendar or Calendar()
    tasks_by_id = {task.id: task for task in tasks}
    critical_ids = {task.id for task in tasks if task.is_critical}

    next_ids: dict[str, list[str]] = {task_id: [] for task_id in critical_ids}
    has_driver: set[str] = set()
    for link in links:
        if link.predecessor_id not in critical_ids or link.successor_id not in critical_ids:
            continue
        if is_driving(link, tasks_by_id, calendar, calendars):
            next_ids[link.predecessor_id].append(link.successor_id)
            has_driver.add(link.successor_id)

    chains: list[list[str]] = []
    for task in tasks:
        if task.id not in critical_ids or task.id in has_driver:
            continue
        stack: list[list[str]] = [[task.id]]
        while stack:
            path = stack.pop()
            following = [task_id for task_id in next_ids[path[-1]] if task_id not in path]
            if not following:
                chains.append(path)
                continue
            # Reverse so the first successor's branch is emitted first
            for task_id in reversed(following):
                stack.append([*path, task_id])
    return chains


def critical_path_stats(tasks: list[Task]) -> CriticalPathStats:
    """Count, share and calendar span of the critical tasks."""
    critical = [task for task in tasks if task.is_critical]
    total = len(tasks)
    percentage = _round_half_up(len(critical) / total * 100) if total else 0

    starts = [task.current_start for task in critical if task.current_start is not None]
    finishes = [task.current_finish for task in critical if task.current_finish is not None]
    if not starts or not finishes:
        return CriticalPathStats(len(critical), total, percentage, 0)

    start, finish = min(starts), max(finishes)
    return CriticalPathStats(
        critical_count=len(critical),
        total_count=total,
        percentage=percentage,
        duration_days=(finish - start).days + 1,
        start=start,
        finish=finish,
    )


def float_summary(tasks: list[Task]) -> FloatSummary:
    """Bucket tasks into critical, low float (up to 3 days) and good float."""
    total_floats = [task.total_float for task in tasks if task.total_float is not None]
    free_floats = [task.free_float for task in tasks if task.free_float is not None]

    critical = sum(1 for value in total_floats if value == 0)
    low = sum(1 for value in total_floats if 0 < value <= LOW_FLOAT_THRESHOLD)

    return FloatSummary(
        total_tasks=len(tasks),
        with_total_float=len(total_floats),
        with_free_float=len(free_floats),
        critical_tasks=critical,
        low_float_tasks=low,
        good_float_tasks=len(total_floats) - critical - low,
        average_total_float=(
            _round_half_up(sum(total_floats) / len(total_floats)) if total_floats else 0
        ),
        average_free_float=(
            _round_half_up(sum(free_floats) / len(free_floats)) if free_floats else 0
        ),
    )


def float_status(task: Task) -> str:
    """Human-readable float category for one task."""
    total_float = task.total_float or 0
    free_float = task.free_float or 0
    if total_float == 0:
        return "Critical"
    if total_float <= VERY_LOW_FLOAT_THRESHOLD:
        return "Very Low Float"
    if total_float <= LOW_FLOAT_THRESHOLD:
        return "Low Float"
    if free_float == 0:
        return "No Free Float"
    return "Good Float"


def format_float(value: int | None, label: str = "TF") -> str:
    """Compact float label such as ``TF:3`` (empty when not computed)."""
    if value is None:
        return ""
    return f"{label}:{value}"
