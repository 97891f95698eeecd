"""Configuration classes for the scheduling system."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class TerminalAnchor(str, Enum):
    """Where the backward pass anchors tasks that have no successors."""

    OWN_FINISH = "own_finish"  # latest_finish = the task's own earliest_finish
    PROJECT_FINISH = "project_finish"  # latest_finish = latest earliest_finish in the project


class LevelingConfig(BaseModel):
    """Configuration for the leveling heuristic."""

    # Upper bound on a single shift, in working days
    max_shift_days: int = Field(default=5, ge=0)


class SchedulingConfig(BaseModel):
    """Configuration for the critical-path scheduler."""

    # Start date for tasks without predecessors or an explicit start (None = today)
    project_start: date | None = None

    terminal_anchor: TerminalAnchor = TerminalAnchor.OWN_FINISH

    # Compare FF/SF free-float candidates against the successor's finish
    # instead of its start
    finish_anchored_free_float: bool = False

    leveling: LevelingConfig = LevelingConfig()
