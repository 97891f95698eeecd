"""Pytest configuration and fixtures for critpath tests."""

from __future__ import annotations

from datetime import date

import pytest

from critpath import context
from critpath.calendar import Calendar
from critpath.logger import reset_logger
from critpath.models import Link, LinkType, ResourceAssignment, Task
from critpath.scheduler import SchedulingConfig, TerminalAnchor

# 2025-01-06 is a Monday; 2025-01-11/12 are the following weekend
MONDAY = date(2025, 1, 6)


@pytest.fixture(autouse=True)
def clean_global_state() -> None:
    """Reset logger and CLI context before each test for isolation."""
    reset_logger()
    context.reset()


@pytest.fixture
def calendar() -> Calendar:
    """Default Monday-Friday calendar without holidays."""
    return Calendar()


@pytest.fixture
def config() -> SchedulingConfig:
    """Scheduling config starting on Monday 2025-01-06."""
    return SchedulingConfig(project_start=MONDAY)


@pytest.fixture
def finish_anchored() -> SchedulingConfig:
    """Scheduling config that anchors terminal tasks at the project finish."""
    return SchedulingConfig(project_start=MONDAY, terminal_anchor=TerminalAnchor.PROJECT_FINISH)


def task(
    task_id: str,
    duration: int = 1,
    *,
    start: date | None = None,
    resources: dict[str, float] | None = None,
    calendar_ref: str | None = None,
) -> Task:
    """Create a Task with optional resource work amounts."""
    return Task(
        id=task_id,
        duration=duration,
        start=start,
        calendar_ref=calendar_ref,
        resource_assignments=[
            ResourceAssignment(resource_id, work) for resource_id, work in (resources or {}).items()
        ],
    )


def link(
    predecessor_id: str,
    successor_id: str,
    link_type: LinkType | str = LinkType.FS,
    lag: int = 0,
) -> Link:
    """Create a Link with an id derived from its endpoints."""
    return Link(
        id=f"{predecessor_id}->{successor_id}",
        predecessor_id=predecessor_id,
        successor_id=successor_id,
        type=link_type,
        lag=lag,
    )


def by_id(tasks: list[Task]) -> dict[str, Task]:
    """Index tasks by id."""
    return {t.id: t for t in tasks}
