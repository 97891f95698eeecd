"""Pydantic schemas for YAML project files."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskSchema(BaseModel):
    """Schema for one entry of the ``tasks`` mapping."""

    name: str = ""
    duration: int = 1
    start: date | None = None
    finish: date | None = None
    calendar: str | None = None
    resources: list[str] = Field(default_factory=list)  # "alice:40" form
    predecessors: list[str] = Field(default_factory=list)  # "design:FS+2" form

    @field_validator("resources", "predecessors", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        """Ensure value is a list."""
        if v is None:
            return []
        if isinstance(v, list):
            return [str(item) for item in v]  # type: ignore[misc]
        return [str(v)]


class LinkSchema(BaseModel):
    """Schema for one entry of the ``links`` list."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    predecessor: str = Field(alias="from")
    successor: str = Field(alias="to")
    type: str = "FS"
    lag: int = 0

    @field_validator("predecessor", "successor", "type", mode="before")
    @classmethod
    def coerce_to_string(cls, v: Any) -> Any:
        """YAML may read ids such as 1 or 2025 as numbers."""
        if isinstance(v, (int, float)):
            return str(v)
        return v


class ProjectSchema(BaseModel):
    """Schema for the entire project YAML data."""

    name: str = ""
    tasks: dict[str, TaskSchema] = Field(default_factory=dict)
    links: list[LinkSchema] = Field(default_factory=list)

    @field_validator("tasks", mode="before")
    @classmethod
    def stringify_task_ids(cls, v: Any) -> Any:
        """Task ids are strings even when YAML reads them as numbers."""
        if isinstance(v, dict):
            return {str(key): value or {} for key, value in v.items()}  # type: ignore[misc]
        return v
