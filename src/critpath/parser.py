"""YAML parser for Critpath project files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ParseError
from .models import Link, LinkType, Project, ResourceAssignment, Task
from .schemas import ProjectSchema


def _link_type(raw: str) -> LinkType | str:
    """Known link types become enums; anything else is kept for validation to report."""
    if LinkType.is_valid(raw):
        return LinkType.parse(raw)
    return raw.strip()


class ProjectParser:
    """Parser for project YAML files.

    This parser only handles YAML parsing and model creation. For loading
    with config discovery and validation, use load_project() from
    critpath.loader.
    """

    def parse_file(self, file_path: Path | str) -> Project:
        """Parse a YAML file into a Project."""
        path = Path(file_path)
        if not path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with path.open(encoding="utf-8") as f:
                data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse YAML: {e}") from e

        if not isinstance(data, dict):
            raise ParseError("YAML must contain a dictionary at the root level")

        return self.parse_data(data)  # type: ignore[arg-type]

    def parse_data(self, data: dict[str, Any]) -> Project:
        """Convert already-loaded YAML data into a Project."""
        try:
            schema = ProjectSchema.model_validate(data)
        except PydanticValidationError as e:
            raise ParseError(f"Invalid project structure: {e}") from e

        tasks: list[Task] = []
        links: list[Link] = []
        for task_id, task_data in schema.tasks.items():
            tasks.append(
                Task(
                    id=task_id,
                    name=task_data.name,
                    duration=task_data.duration,
                    start=task_data.start,
                    finish=task_data.finish,
                    calendar_ref=task_data.calendar,
                    resource_assignments=[
                        ResourceAssignment.parse(spec) for spec in task_data.resources
                    ],
                )
            )
            # Inline predecessors become links ending at this task
            links.extend(Link.parse(spec, task_id) for spec in task_data.predecessors)

        for link_data in schema.links:
            links.append(
                Link(
                    id=link_data.id or f"{link_data.predecessor}->{link_data.successor}",
                    predecessor_id=link_data.predecessor,
                    successor_id=link_data.successor,
                    type=_link_type(link_data.type),
                    lag=link_data.lag,
                )
            )

        return Project(tasks=tasks, links=links, name=schema.name)
