"""Dependency graph: adjacency index, link validation and cycle detection."""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import CircularDependencyError
from .models import Link, LinkType, Task

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from .calendar import Calendar


class IssueKind(str, Enum):
    """Categories of validation problem."""

    MISSING_REFERENCE = "missing_reference"
    SELF_LOOP = "self_loop"
    INVALID_LINK_TYPE = "invalid_link_type"
    DUPLICATE_TASK = "duplicate_task"
    DUPLICATE_LINK = "duplicate_link"
    INVALID_DURATION = "invalid_duration"
    UNKNOWN_CALENDAR = "unknown_calendar"


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found while validating tasks and links."""

    kind: IssueKind
    message: str
    task_id: str | None = None
    link_id: str | None = None

    def __str__(self) -> str:
        return self.message


class DependencyGraph:
    """Read-only adjacency index over tasks and links.

    Built once per scheduling call. Links whose endpoints are unknown are
    left out of the index; run ``validate()`` first to report them.
    """

    def __init__(self, tasks: list[Task], links: list[Link]):
        self._tasks: dict[str, Task] = {}
        for task in tasks:
            self._tasks.setdefault(task.id, task)

        preds: dict[str, list[Link]] = {task_id: [] for task_id in self._tasks}
        succs: dict[str, list[Link]] = {task_id: [] for task_id in self._tasks}
        for link in links:
            if link.predecessor_id in self._tasks and link.successor_id in self._tasks:
                succs[link.predecessor_id].append(link)
                preds[link.successor_id].append(link)

        self._links = [
            link
            for link in links
            if link.predecessor_id in self._tasks and link.successor_id in self._tasks
        ]
        self._predecessors = {task_id: tuple(items) for task_id, items in preds.items()}
        self._successors = {task_id: tuple(items) for task_id, items in succs.items()}

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def task_ids(self) -> list[str]:
        """Task ids in input order."""
        return list(self._tasks)

    def task(self, task_id: str) -> Task:
        """Look up a task, raising KeyError if unknown."""
        return self._tasks[task_id]

    def predecessors(self, task_id: str) -> tuple[Link, ...]:
        """Incoming links of a task (empty for unknown ids)."""
        return self._predecessors.get(task_id, ())

    def successors(self, task_id: str) -> tuple[Link, ...]:
        """Outgoing links of a task (empty for unknown ids)."""
        return self._successors.get(task_id, ())

    def topological_order(self) -> list[str]:
        """Kahn ordering, stable with respect to input order.

        Raises:
            CircularDependencyError: If some tasks can never become ready
        """
        in_degree = {task_id: len(links) for task_id, links in self._predecessors.items()}
        queue: deque[str] = deque(task_id for task_id, degree in in_degree.items() if degree == 0)
        order: list[str] = []

        while queue:
            task_id = queue.popleft()
            order.append(task_id)
            for link in self._successors[task_id]:
                in_degree[link.successor_id] -= 1
                if in_degree[link.successor_id] == 0:
                    queue.append(link.successor_id)

        if len(order) != len(self._tasks):
            cycles = detect_cycles(self._links)
            described = "; ".join(" -> ".join(cycle) for cycle in cycles)
            raise CircularDependencyError(f"Circular dependency detected: {described}", cycles)
        return order


def validate(
    tasks: list[Task],
    links: list[Link],
    calendars: Mapping[str, Calendar] | None = None,
) -> list[ValidationIssue]:
    """Collect every task and link problem (an empty list means valid).

    Multi-hop cycles are not reported here; see ``detect_cycles``.
    """
    issues: list[ValidationIssue] = []

    task_counts = Counter(task.id for task in tasks)
    for task_id, count in task_counts.items():
        if count > 1:
            issues.append(
                ValidationIssue(
                    IssueKind.DUPLICATE_TASK,
                    f"Task '{task_id}' is defined {count} times",
                    task_id=task_id,
                )
            )

    for task in tasks:
        if task.duration < 1:
            issues.append(
                ValidationIssue(
                    IssueKind.INVALID_DURATION,
                    f"Task '{task.id}' has duration {task.duration} (must be at least 1)",
                    task_id=task.id,
                )
            )
        if task.calendar_ref and (calendars is None or task.calendar_ref not in calendars):
            issues.append(
                ValidationIssue(
                    IssueKind.UNKNOWN_CALENDAR,
                    f"Task '{task.id}' references unknown calendar '{task.calendar_ref}'",
                    task_id=task.id,
                )
            )

    link_counts = Counter(link.id for link in links)
    for link_id, count in link_counts.items():
        if count > 1:
            issues.append(
                ValidationIssue(
                    IssueKind.DUPLICATE_LINK,
                    f"Link '{link_id}' is defined {count} times",
                    link_id=link_id,
                )
            )

    for link in links:
        endpoints = (("predecessor", link.predecessor_id), ("successor", link.successor_id))
        for role, endpoint in endpoints:
            if endpoint not in task_counts:
                issues.append(
                    ValidationIssue(
                        IssueKind.MISSING_REFERENCE,
                        f"Link '{link.id}' references unknown {role} '{endpoint}'",
                        task_id=endpoint,
                        link_id=link.id,
                    )
                )
        if link.predecessor_id == link.successor_id:
            issues.append(
                ValidationIssue(
                    IssueKind.SELF_LOOP,
                    f"Link '{link.id}' connects task '{link.predecessor_id}' to itself",
                    task_id=link.predecessor_id,
                    link_id=link.id,
                )
            )
        if not LinkType.is_valid(link.type):
            issues.append(
                ValidationIssue(
                    IssueKind.INVALID_LINK_TYPE,
                    f"Link '{link.id}' has unknown type '{link.type}' "
                    f"(expected one of {', '.join(t.value for t in LinkType)})",
                    link_id=link.id,
                )
            )

    return issues


def _canonical_cycle(cycle: list[str]) -> tuple[str, ...]:
    """Rotation-independent key for a closed cycle path."""
    body = cycle[:-1]
    pivot = body.index(min(body))
    return tuple(body[pivot:] + body[:pivot])


def detect_cycles(links: list[Link]) -> list[list[str]]:
    """Find dependency cycles with a depth-first search.

    Each cycle is returned as a closed path, e.g. ``["A", "B", "C", "A"]``.
    Roots are tried in order of first appearance in ``links``; the same cycle
    found from a different starting point is reported once.
    """
    adjacency: dict[str, list[str]] = {}
    for link in links:
        adjacency.setdefault(link.predecessor_id, []).append(link.successor_id)
        adjacency.setdefault(link.successor_id, [])

    visited: set[str] = set()
    seen_cycles: set[tuple[str, ...]] = set()
    cycles: list[list[str]] = []

    for root in adjacency:
        if root in visited:
            continue

        path: list[str] = [root]
        on_stack: set[str] = {root}
        stack: list[Iterator[str]] = [iter(adjacency[root])]
        visited.add(root)

        while stack:
            neighbour = next(stack[-1], None)
            if neighbour is None:
                stack.pop()
                on_stack.discard(path.pop())
                continue
            if neighbour in on_stack:
                cycle = path[path.index(neighbour) :] + [neighbour]
                key = _canonical_cycle(cycle)
                if key not in seen_cycles:
                    seen_cycles.add(key)
                    cycles.append(cycle)
            elif neighbour not in visited:
                visited.add(neighbour)
                on_stack.add(neighbour)
                path.append(neighbour)
                stack.append(iter(adjacency[neighbour]))

    return cycles
