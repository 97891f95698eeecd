"""Daily resource allocation and over-allocation detection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from ..calendar import Calendar, add_working_units, resolve_calendar, snap_to_working_day

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..models import Task
    from ..resources import Resource

# Allocation sums are floats; ignore excess below this
ALLOCATION_EPSILON = 1e-9

DailyAllocation = dict[date, dict[str, float]]


@dataclass(frozen=True)
class Conflict:
    """A resource loaded beyond its capacity on one date."""

    date: date
    resource_id: str
    resource_name: str
    allocation: float
    capacity: float
    over_allocation: float

    @property
    def key(self) -> tuple[date, str]:
        return (self.date, self.resource_id)

    def __str__(self) -> str:
        return (
            f"{self.date.isoformat()} {self.resource_name}: "
            f"{self.allocation:g} / {self.capacity:g} (+{self.over_allocation:g})"
        )


def task_span(task: Task, start: date, calendar: Calendar) -> tuple[date, date]:
    """Working-day start and finish of a task placed at ``start``."""
    first = snap_to_working_day(start, calendar)
    return first, add_working_units(first, task.duration - 1, calendar)


def working_days(task: Task, start: date, calendar: Calendar) -> list[date]:
    """The task's working days when placed at ``start``."""
    first = snap_to_working_day(start, calendar)
    days = [first]
    for _ in range(task.duration - 1):
        days.append(add_working_units(days[-1], 1, calendar))
    return days


def daily_shares(task: Task) -> dict[str, float]:
    """Per-day load of each resource: total work spread over the duration."""
    shares: dict[str, float] = {}
    for assignment in task.resource_assignments:
        shares[assignment.resource_id] = (
            shares.get(assignment.resource_id, 0.0) + assignment.work / task.duration
        )
    return shares


def compute_daily_allocation(
    tasks: Iterable[Task],
    calendar: Calendar,
    calendars: Mapping[str, Calendar] | None = None,
    starts: Mapping[str, date] | None = None,
) -> DailyAllocation:
    """Sum resource load per working day.

    Tasks are placed at ``start`` if set, otherwise ``earliest_start``;
    ``starts`` overrides both (used to simulate shifts). Tasks with no
    assignments or no known start are skipped.

    Returns:
        Mapping of date to ``{resource_id: load}``, ordered by date
    """
    daily: DailyAllocation = {}
    for task in tasks:
        if not task.resource_assignments or task.duration < 1:
            continue
        start = (starts or {}).get(task.id, task.current_start)
        if start is None:
            continue
        task_calendar = resolve_calendar(task, calendar, calendars)
        shares = daily_shares(task)
        for day in working_days(task, start, task_calendar):
            loads = daily.setdefault(day, {})
            for resource_id, share in shares.items():
                loads[resource_id] = loads.get(resource_id, 0.0) + share
    return dict(sorted(daily.items()))


def detect_over_allocations(
    daily: DailyAllocation, resources: Iterable[Resource]
) -> list[Conflict]:
    """Conflicts for every (date, resource) whose load exceeds capacity.

    Resources missing from ``resources`` are not checked.
    """
    by_id = {resource.id: resource for resource in resources}
    conflicts: list[Conflict] = []
    for day, loads in daily.items():
        for resource_id, allocation in loads.items():
            resource = by_id.get(resource_id)
            if resource is None:
                continue
            excess = allocation - resource.capacity
            if excess > ALLOCATION_EPSILON:
                conflicts.append(
                    Conflict(
                        date=day,
                        resource_id=resource_id,
                        resource_name=resource.display_name,
                        allocation=allocation,
                        capacity=resource.capacity,
                        over_allocation=excess,
                    )
                )
    return conflicts
