"""Data models for Critpath."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class LinkType(str, Enum):
    """Dependency relationship between two tasks."""

    FS = "FS"  # Finish-to-Start
    SS = "SS"  # Start-to-Start
    FF = "FF"  # Finish-to-Finish
    SF = "SF"  # Start-to-Finish

    @classmethod
    def parse(cls, value: LinkType | str) -> LinkType:
        """Convert a raw link type to the enum, raising ValueError for unknown kinds."""
        if isinstance(value, LinkType):
            return value
        return cls(str(value).strip().upper())

    @classmethod
    def is_valid(cls, value: LinkType | str) -> bool:
        """Check whether a raw link type names one of the four kinds."""
        try:
            cls.parse(value)
        except ValueError:
            return False
        return True


@dataclass(frozen=True)
class ResourceAssignment:
    """Total work a resource contributes to a task."""

    resource_id: str
    work: float

    @classmethod
    def parse(cls, spec: str) -> ResourceAssignment:
        """Parse an assignment string.

        Supported formats:
        - "alice" - alice with 1.0 unit of work
        - "alice:40" - alice with 40 units of work
        """
        spec = spec.strip()
        if ":" not in spec:
            return cls(resource_id=spec, work=1.0)
        name, work_str = spec.rsplit(":", 1)
        try:
            work = float(work_str.strip())
        except ValueError:
            work = 1.0
        return cls(resource_id=name.strip(), work=work)

    def __str__(self) -> str:
        if self.work == int(self.work):
            return f"{self.resource_id}:{int(self.work)}"
        return f"{self.resource_id}:{self.work}"


def _default_assignments() -> list[ResourceAssignment]:
    return []


@dataclass
class Task:
    """A unit of work in the programme.

    ``start``/``finish`` are owned by the caller. The ``earliest_*``,
    ``latest_*``, float and criticality fields are filled in by the scheduler.
    """

    id: str
    duration: int = 1  # Working days
    name: str = ""
    start: date | None = None
    finish: date | None = None
    calendar_ref: str | None = None  # None = project calendar
    resource_assignments: list[ResourceAssignment] = field(default_factory=_default_assignments)

    earliest_start: date | None = None
    earliest_finish: date | None = None
    latest_start: date | None = None
    latest_finish: date | None = None
    total_float: int | None = None
    free_float: int | None = None
    is_critical: bool = False

    @property
    def current_start(self) -> date | None:
        """Caller start if set, otherwise the computed earliest start."""
        return self.start if self.start is not None else self.earliest_start

    @property
    def current_finish(self) -> date | None:
        """Caller finish if set, otherwise the computed earliest finish."""
        return self.finish if self.finish is not None else self.earliest_finish


@dataclass(frozen=True)
class Link:
    """A typed dependency edge between two tasks.

    Lag is in working days of the relevant calendar: positive delays the
    successor, negative lets it overlap.
    """

    id: str
    predecessor_id: str
    successor_id: str
    type: LinkType | str = LinkType.FS
    lag: int = 0

    @property
    def link_type(self) -> LinkType:
        """The link type as an enum (raises ValueError for unknown kinds)."""
        return LinkType.parse(self.type)

    @classmethod
    def parse(cls, spec: str, successor_id: str, link_id: str | None = None) -> Link:
        """Parse a predecessor string into a Link ending at ``successor_id``.

        Supported formats:
        - "design" - FS link with no lag
        - "design:SS" - typed link with no lag
        - "design:FS+2" / "design:FF-1" - typed link with lag
        """
        spec = spec.strip()
        match = re.match(r"^(.+?):([A-Za-z]{2})\s*([+-]\s*\d+)?$", spec)
        if match:
            predecessor_id, raw_type, raw_lag = match.groups()
            lag = int(raw_lag.replace(" ", "")) if raw_lag else 0
            link_type: LinkType | str = raw_type.upper()
            if LinkType.is_valid(link_type):
                link_type = LinkType.parse(link_type)
        else:
            predecessor_id, link_type, lag = spec, LinkType.FS, 0

        predecessor_id = predecessor_id.strip()
        return cls(
            id=link_id or f"{predecessor_id}->{successor_id}",
            predecessor_id=predecessor_id,
            successor_id=successor_id,
            type=link_type,
            lag=lag,
        )

    def __str__(self) -> str:
        raw_type = self.type.value if isinstance(self.type, LinkType) else str(self.type)
        if self.lag == 0:
            return f"{self.predecessor_id} -{raw_type}-> {self.successor_id}"
        return f"{self.predecessor_id} -{raw_type}{self.lag:+d}-> {self.successor_id}"


def _default_tasks() -> list[Task]:
    return []


def _default_links() -> list[Link]:
    return []


@dataclass
class Project:
    """Tasks and links loaded from a project file."""

    tasks: list[Task] = field(default_factory=_default_tasks)
    links: list[Link] = field(default_factory=_default_links)
    name: str = ""

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_all_ids(self) -> set[str]:
        return {task.id for task in self.tasks}
