"""Resource definitions used by leveling.

A resource has a per-day capacity in the same unit as ``work / duration``
of its assignments. The default of 100 treats capacity as a percentage of
one full-time person.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

DEFAULT_CAPACITY = 100.0


class Resource(BaseModel):
    """A single resource and its daily capacity."""

    id: str
    name: str = ""
    capacity: float = Field(default=DEFAULT_CAPACITY, gt=0)

    @property
    def display_name(self) -> str:
        return self.name or self.id


class ResourceConfig(BaseModel):
    """Complete resource configuration."""

    resources: list[Resource] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> ResourceConfig:
        """Ensure resource ids are unique."""
        seen: set[str] = set()
        for resource in self.resources:
            if resource.id in seen:
                raise ValueError(f"Resource '{resource.id}' is defined more than once")
            seen.add(resource.id)
        return self

    def get(self, resource_id: str) -> Resource | None:
        for resource in self.resources:
            if resource.id == resource_id:
                return resource
        return None

    def capacities(self) -> dict[str, float]:
        """Capacity per resource id."""
        return {resource.id: resource.capacity for resource in self.resources}
