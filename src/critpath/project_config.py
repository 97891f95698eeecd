"""Project configuration loader (critpath_config.yaml).

One YAML file holds the project calendar, named per-task calendars, the
resource list and scheduler settings::

    calendar:
      name: Site A
      holidays: [2025-12-25]
      exceptions_file: shutdowns.ics
    calendars:
      night_shift:
        working_days: {saturday: true}
    resources:
      - {id: alice, capacity: 100}
    scheduler:
      project_start: 2025-01-06
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .calendar import Calendar
from .exceptions import ParseError
from .exchange import ExchangeFormat, import_exceptions
from .resources import ResourceConfig
from .scheduler import SchedulingConfig

CONFIG_FILENAME = "critpath_config.yaml"


class ProjectConfig(BaseModel):
    """Everything needed to schedule and level a project, apart from tasks and links."""

    calendar: Calendar = Field(default_factory=Calendar)
    calendars: dict[str, Calendar] = Field(default_factory=dict)
    resources: ResourceConfig = Field(default_factory=ResourceConfig)
    scheduler: SchedulingConfig = Field(default_factory=SchedulingConfig)


def _calendar_data(raw: Any, base_dir: Path, default_id: str) -> dict[str, Any]:
    """Normalise a calendar section, pulling in an ``exceptions_file`` if given."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Calendar '{default_id}' must be a mapping")

    data: dict[str, Any] = dict(raw)  # type: ignore[arg-type]
    data.setdefault("id", default_id)
    exceptions_file = data.pop("exceptions_file", None)
    if exceptions_file:
        path = Path(exceptions_file)
        if not path.is_absolute():
            path = base_dir / path
        if not path.exists():
            raise FileNotFoundError(f"Exceptions file not found: {path}")
        try:
            imported = import_exceptions(
                path.read_text(encoding="utf-8"), ExchangeFormat.from_path(path)
            )
        except ParseError as e:
            raise ValueError(f"Invalid exceptions file {path}: {e}") from e
        data["exceptions"] = [*data.get("exceptions", []), *imported]
    return data


def load_project_config(config_path: Path | str) -> ProjectConfig:
    """Load project configuration from YAML file.

    Args:
        config_path: Path to critpath_config.yaml file

    Returns:
        ProjectConfig with defaults for any missing section

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open(encoding="utf-8") as f:
        data: Any = yaml.safe_load(f)

    if not data:
        raise ValueError("Empty configuration file")
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a mapping at the root level")

    base_dir = config_path.parent
    calendars_raw: Any = data.get("calendars") or {}
    if not isinstance(calendars_raw, dict):
        raise ValueError("'calendars' must map calendar ids to calendar definitions")

    resources_raw = data.get("resources") or []
    return ProjectConfig.model_validate(
        {
            "calendar": _calendar_data(data.get("calendar"), base_dir, "global"),
            "calendars": {
                str(calendar_id): _calendar_data(raw, base_dir, str(calendar_id))
                for calendar_id, raw in calendars_raw.items()  # type: ignore[union-attr]
            },
            "resources": {"resources": resources_raw},
            "scheduler": data.get("scheduler") or {},
        }
    )
