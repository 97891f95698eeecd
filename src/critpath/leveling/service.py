"""High-level leveling service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..calendar import Calendar
from ..logger import get_logger
from ..scheduler import CriticalPathScheduler, ScheduleResult, SchedulingConfig
from .allocation import compute_daily_allocation, detect_over_allocations
from .shifts import LevelingApplication, LevelingPreview, apply_shifts, propose_shifts

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..models import Link, Task
    from ..resources import Resource

logger = get_logger()


@dataclass
class LevelingStats:
    """Resource pressure and leveling headroom of a schedule."""

    total_conflicts: int
    total_over_allocation: float
    non_critical_tasks: int
    shiftable_tasks: int  # Non-critical tasks with at least one assignment
    average_float: float


@dataclass
class LevelingOutcome:
    """Preview, application and refreshed schedule of one leveling round."""

    preview: LevelingPreview
    application: LevelingApplication
    schedule: ScheduleResult


def leveling_stats(
    tasks: list[Task],
    resources: Iterable[Resource],
    calendar: Calendar,
    calendars: Mapping[str, Calendar] | None = None,
) -> LevelingStats:
    """Summarise conflicts and how much float is available to resolve them."""
    daily = compute_daily_allocation(tasks, calendar, calendars)
    conflicts = detect_over_allocations(daily, resources)
    non_critical = [task for task in tasks if not task.is_critical and (task.total_float or 0) > 0]
    shiftable = [task for task in non_critical if task.resource_assignments]
    average = (
        sum(task.total_float or 0 for task in non_critical) / len(non_critical)
        if non_critical
        else 0.0
    )
    return LevelingStats(
        total_conflicts=len(conflicts),
        total_over_allocation=sum(conflict.over_allocation for conflict in conflicts),
        non_critical_tasks=len(non_critical),
        shiftable_tasks=len(shiftable),
        average_float=average,
    )


class LevelingService:
    """Resource leveling on top of a scheduled task set.

    This service coordinates:
    - compute_daily_allocation / detect_over_allocations (find conflicts)
    - propose_shifts (preview)
    - apply_shifts plus a scheduler re-run (apply)
    """

    def __init__(
        self,
        resources: Iterable[Resource],
        calendar: Calendar | None = None,
        calendars: Mapping[str, Calendar] | None = None,
        config: SchedulingConfig | None = None,
    ):
        """Initialize leveling service.

        Args:
            resources: Resources with capacities; others are not leveled
            calendar: Project default calendar
            calendars: Optional per-task calendars keyed by id
            config: Optional scheduling configuration (leveling.max_shift_days)
        """
        self.resources = list(resources)
        self.calendar = calendar or Calendar()
        self.calendars = dict(calendars or {})
        self.config = config or SchedulingConfig()

    def preview(self, tasks: list[Task], links: list[Link]) -> LevelingPreview:
        """Detect conflicts on scheduled tasks and propose shifts."""
        daily = compute_daily_allocation(tasks, self.calendar, self.calendars)
        conflicts = detect_over_allocations(daily, self.resources)
        logger.checks(f"Leveling: {len(conflicts)} over-allocation(s) detected")
        preview = propose_shifts(
            conflicts,
            tasks,
            links,
            self.calendar,
            self.calendars,
            resources=self.resources,
            max_shift=self.config.leveling.max_shift_days,
        )
        logger.changes(f"Leveling: {preview.message} ({preview.status.value})")
        return preview

    def apply(self, preview: LevelingPreview, tasks: list[Task]) -> LevelingApplication:
        """Apply every proposed shift of a preview."""
        return apply_shifts(preview.proposed_shifts, tasks, self.calendar, self.calendars)

    def level(self, tasks: list[Task], links: list[Link]) -> LevelingOutcome:
        """Preview, apply and re-schedule in one step.

        ``tasks`` should already be scheduled so float is known.
        """
        preview = self.preview(tasks, links)
        application = self.apply(preview, tasks)
        scheduler = CriticalPathScheduler(self.calendar, self.calendars, self.config)
        return LevelingOutcome(
            preview=preview,
            application=application,
            schedule=scheduler.schedule(application.tasks, links),
        )

    def stats(self, tasks: list[Task]) -> LevelingStats:
        return leveling_stats(tasks, self.resources, self.calendar, self.calendars)
