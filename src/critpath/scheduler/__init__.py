"""Scheduler package - critical-path scheduling over a dependency DAG.

This package provides:
- Forward and backward passes over FS/SS/FF/SF links with lag
- Total and free float, criticality flags
- Critical-path and float statistics

Main entry points:
- CriticalPathScheduler: configured scheduler object
- schedule: one-shot convenience function

Configuration:
- SchedulingConfig: project start, terminal anchor, free-float mode, leveling
"""

# Configuration
from .config import LevelingConfig, SchedulingConfig, TerminalAnchor

# Core dataclasses
from .core import ErrorKind, ScheduleContext, ScheduleError, ScheduleResult, TaskDates

# Float computation
from .floats import compute_floats, free_float_gap

# Passes
from .passes import BackwardPass, ForwardPass, backward_candidate, forward_candidate

# High-level service
from .service import CriticalPathScheduler, schedule

# Statistics
from .stats import (
    CriticalPathStats,
    FloatSummary,
    critical_path,
    critical_path_stats,
    float_status,
    float_summary,
    format_float,
    is_driving,
)

# Input validation
from .validator import ScheduleInputValidator

__all__ = [
    # Core dataclasses
    "ErrorKind",
    "ScheduleContext",
    "ScheduleError",
    "ScheduleResult",
    "TaskDates",
    # Configuration
    "LevelingConfig",
    "SchedulingConfig",
    "TerminalAnchor",
    # Passes
    "BackwardPass",
    "ForwardPass",
    "backward_candidate",
    "forward_candidate",
    # Floats
    "compute_floats",
    "free_float_gap",
    # Statistics
    "CriticalPathStats",
    "FloatSummary",
    "critical_path",
    "critical_path_stats",
    "float_status",
    "float_summary",
    "format_float",
    "is_driving",
    # Service
    "CriticalPathScheduler",
    "schedule",
    # Validation
    "ScheduleInputValidator",
]
