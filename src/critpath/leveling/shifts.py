"""Shift proposal and application for resource leveling.

Leveling is preview-then-apply: ``propose_shifts`` never changes a task,
and ``apply_shifts`` only returns new tasks with updated ``start``/``finish``.
The caller re-runs the scheduler afterwards since criticality may change.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from ..calendar import Calendar, add_working_units, resolve_calendar
from ..logger import get_logger
from ..models import LinkType
from ..scheduler.passes import forward_candidate
from .allocation import (
    ALLOCATION_EPSILON,
    Conflict,
    compute_daily_allocation,
    daily_shares,
    detect_over_allocations,
    task_span,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..models import Link, Task
    from ..resources import Resource

logger = get_logger()

DEFAULT_MAX_SHIFT = 5


class LevelingStatus(str, Enum):
    """Overall outcome of a leveling preview."""

    NO_CONFLICTS = "no_conflicts"
    RESOLVED = "resolved"  # Every conflict resolved
    PARTIAL = "partial"  # Some conflicts resolved, some left over
    INFEASIBLE = "infeasible"  # No conflict could be resolved


@dataclass(frozen=True)
class ProposedShift:
    """Move one task later by ``shift_days`` working days to relieve a conflict."""

    task_id: str
    task_name: str
    current_start: date
    shifted_start: date
    shifted_finish: date
    shift_days: int
    total_float: int
    resource_id: str
    resource_allocation: float  # Task's daily load on the resource
    conflict_date: date
    allocation_removed: float
    new_over_allocation: float


def _default_conflicts() -> list[Conflict]:
    return []


def _default_shifts() -> list[ProposedShift]:
    return []


@dataclass
class LevelingPreview:
    """Proposed shifts plus what they do and do not fix."""

    status: LevelingStatus
    conflicts: list[Conflict] = field(default_factory=_default_conflicts)
    proposed_shifts: list[ProposedShift] = field(default_factory=_default_shifts)
    unresolved: list[Conflict] = field(default_factory=_default_conflicts)
    # Conflicts relieved as a side effect of an earlier shift
    relieved: list[Conflict] = field(default_factory=_default_conflicts)
    # Conflicts that would exist after the shifts (needs the resource list)
    remaining_conflicts: list[Conflict] = field(default_factory=_default_conflicts)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def is_feasible(self) -> bool:
        return not self.unresolved

    @property
    def message(self) -> str:
        if not self.conflicts:
            return "No resource conflicts detected"
        return (
            f"{len(self.conflicts)} resource conflicts detected, "
            f"{len(self.proposed_shifts)} tasks can be shifted"
        )


class _Placement:
    """Simulated task positions while shifts are being chosen."""

    def __init__(
        self,
        tasks: list[Task],
        calendar: Calendar,
        calendars: Mapping[str, Calendar] | None,
    ):
        self.calendar = calendar
        self.calendars = calendars
        self.tasks = {task.id: task for task in tasks}
        self.spans: dict[str, tuple[date, date]] = {}
        for task in tasks:
            start = task.current_start
            if start is None or task.duration < 1:
                continue
            self.spans[task.id] = task_span(task, start, self.calendar_for(task))

    def calendar_for(self, task: Task) -> Calendar:
        return resolve_calendar(task, self.calendar, self.calendars)

    def active_on(self, task_id: str, day: date) -> bool:
        span = self.spans.get(task_id)
        return span is not None and span[0] <= day <= span[1]

    def load(self, resource_id: str, day: date) -> float:
        total = 0.0
        for task_id, task in self.tasks.items():
            if self.active_on(task_id, day):
                total += daily_shares(task).get(resource_id, 0.0)
        return total

    def link_holds(self, link: Link, spans: Mapping[str, tuple[date, date]]) -> bool:
        pred = self.tasks[link.predecessor_id]
        succ = self.tasks[link.successor_id]
        pred_start, pred_finish = spans[link.predecessor_id]
        earliest = forward_candidate(
            link, pred_start, pred_finish, succ.duration, self.calendar_for(pred)
        )
        return spans[link.successor_id][0] >= earliest


def _checkable(link: Link, placement: _Placement) -> bool:
    return (
        LinkType.is_valid(link.type)
        and link.predecessor_id in placement.spans
        and link.successor_id in placement.spans
        and link.predecessor_id != link.successor_id
    )


def _breaks_links(
    task_id: str,
    new_span: tuple[date, date],
    links: list[Link],
    placement: _Placement,
) -> Link | None:
    """First link that held before the move but not after, if any."""
    moved = {**placement.spans, task_id: new_span}
    for link in links:
        if task_id not in (link.predecessor_id, link.successor_id):
            continue
        if not _checkable(link, placement):
            continue
        if placement.link_holds(link, placement.spans) and not placement.link_holds(link, moved):
            return link
    return None


def propose_shifts(  # noqa: PLR0913 - mirrors the leveling inputs
    conflicts: list[Conflict],
    tasks: list[Task],
    links: list[Link],
    calendar: Calendar,
    calendars: Mapping[str, Calendar] | None = None,
    *,
    resources: Iterable[Resource] | None = None,
    max_shift: int = DEFAULT_MAX_SHIFT,
) -> LevelingPreview:
    """Pick at most one shift per conflict, most severe conflict first.

    Candidates for a conflict are non-critical tasks (``total_float > 0``)
    active on the date and assigned to the resource, not already shifted,
    ranked by total float then daily load (both descending). A candidate
    moves ``min(total_float, max_shift)`` working days later. It is
    rejected if it would still be active on the conflict date or if it
    would break a link constraint that currently holds.

    Never raises; conflicts without an acceptable shift are returned in
    ``unresolved``.
    """
    if not conflicts:
        return LevelingPreview(status=LevelingStatus.NO_CONFLICTS)

    placement = _Placement(tasks, calendar, calendars)
    ordered = sorted(conflicts, key=lambda c: c.over_allocation, reverse=True)
    shifted: set[str] = set()
    proposals: list[ProposedShift] = []
    unresolved: list[Conflict] = []
    relieved: list[Conflict] = []

    for conflict in ordered:
        load = placement.load(conflict.resource_id, conflict.date)
        if proposals and load - conflict.capacity <= ALLOCATION_EPSILON:
            logger.checks(f"Conflict {conflict} already relieved by earlier shifts")
            relieved.append(conflict)
            continue

        proposal = _resolve_conflict(
            conflict, load, tasks, links, placement, shifted, max_shift
        )
        if proposal is None:
            logger.checks(f"Conflict {conflict}: no acceptable shift")
            unresolved.append(conflict)
            continue

        shifted.add(proposal.task_id)
        placement.spans[proposal.task_id] = (proposal.shifted_start, proposal.shifted_finish)
        proposals.append(proposal)
        logger.changes(
            f"Shift {proposal.task_id} by {proposal.shift_days} working day(s): "
            f"{proposal.current_start.isoformat()} -> {proposal.shifted_start.isoformat()} "
            f"(relieves {conflict.resource_name} on {conflict.date.isoformat()})"
        )

    remaining: list[Conflict] = []
    if resources is not None:
        starts = {task_id: span[0] for task_id, span in placement.spans.items()}
        daily = compute_daily_allocation(tasks, calendar, calendars, starts=starts)
        remaining = detect_over_allocations(daily, resources)

    if not unresolved:
        status = LevelingStatus.RESOLVED
    elif proposals:
        status = LevelingStatus.PARTIAL
    else:
        status = LevelingStatus.INFEASIBLE

    return LevelingPreview(
        status=status,
        conflicts=ordered,
        proposed_shifts=proposals,
        unresolved=unresolved,
        relieved=relieved,
        remaining_conflicts=remaining,
    )


def _resolve_conflict(  # noqa: PLR0913
    conflict: Conflict,
    load: float,
    tasks: list[Task],
    links: list[Link],
    placement: _Placement,
    shifted: set[str],
    max_shift: int,
) -> ProposedShift | None:
    candidates: list[tuple[Task, float]] = []
    for task in tasks:
        if task.id in shifted or not task.total_float or task.total_float <= 0:
            continue
        if not placement.active_on(task.id, conflict.date):
            continue
        share = daily_shares(task).get(conflict.resource_id)
        if share is None:
            continue
        candidates.append((task, share))
    candidates.sort(key=lambda item: (-(item[0].total_float or 0), -item[1]))

    for task, share in candidates:
        assert task.total_float is not None
        shift_days = min(task.total_float, max_shift)
        if shift_days <= 0:
            continue

        task_calendar = placement.calendar_for(task)
        current_start = placement.spans[task.id][0]
        new_start = add_working_units(current_start, shift_days, task_calendar)
        new_finish = add_working_units(new_start, task.duration - 1, task_calendar)

        if new_start <= conflict.date <= new_finish:
            logger.checks(f"  {task.id}: still active on {conflict.date.isoformat()}, rejected")
            continue
        broken = _breaks_links(task.id, (new_start, new_finish), links, placement)
        if broken is not None:
            logger.checks(f"  {task.id}: would break {broken}, rejected")
            continue

        return ProposedShift(
            task_id=task.id,
            task_name=task.name or task.id,
            current_start=current_start,
            shifted_start=new_start,
            shifted_finish=new_finish,
            shift_days=shift_days,
            total_float=task.total_float,
            resource_id=conflict.resource_id,
            resource_allocation=share,
            conflict_date=conflict.date,
            allocation_removed=share,
            new_over_allocation=max(0.0, load - share - conflict.capacity),
        )
    return None


@dataclass(frozen=True)
class AppliedShift:
    """Record of one applied shift."""

    task_id: str
    task_name: str
    old_start: date | None
    new_start: date
    new_finish: date
    days_shifted: int


def _default_applied() -> list[AppliedShift]:
    return []


def _default_errors() -> list[str]:
    return []


@dataclass
class LevelingApplication:
    """Tasks after applying shifts, plus what happened."""

    tasks: list[Task]
    applied: list[AppliedShift] = field(default_factory=_default_applied)
    errors: list[str] = field(default_factory=_default_errors)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        if not self.errors:
            return f"Successfully shifted {len(self.applied)} tasks"
        return f"Applied {len(self.applied)} shifts with {len(self.errors)} errors"


def apply_shifts(
    shifts: list[ProposedShift],
    tasks: list[Task],
    calendar: Calendar,
    calendars: Mapping[str, Calendar] | None = None,
) -> LevelingApplication:
    """Return new tasks with ``start``/``finish`` moved for each shift.

    Only the shifted tasks change, and only those two fields. Unknown task
    ids are reported in ``errors``.
    """
    by_id = {task.id: task for task in tasks}
    updated: dict[str, Task] = {}
    applied: list[AppliedShift] = []
    errors: list[str] = []

    for shift in shifts:
        task = updated.get(shift.task_id) or by_id.get(shift.task_id)
        if task is None:
            errors.append(f"Task {shift.task_name} not found")
            continue
        task_calendar = resolve_calendar(task, calendar, calendars)
        new_finish = add_working_units(shift.shifted_start, task.duration - 1, task_calendar)
        updated[task.id] = replace(task, start=shift.shifted_start, finish=new_finish)
        applied.append(
            AppliedShift(
                task_id=task.id,
                task_name=shift.task_name,
                old_start=task.current_start,
                new_start=shift.shifted_start,
                new_finish=new_finish,
                days_shifted=shift.shift_days,
            )
        )
        logger.changes(f"Applied shift: {task.id} now starts {shift.shifted_start.isoformat()}")

    return LevelingApplication(
        tasks=[updated.get(task.id, task) for task in tasks],
        applied=applied,
        errors=errors,
    )
