"""Leveling package - shift non-critical tasks within float to relieve over-allocation.

Main entry points:
- LevelingService: preview, apply and re-schedule
- compute_daily_allocation / detect_over_allocations: find conflicts
- propose_shifts / apply_shifts: the preview-then-apply protocol
"""

from .allocation import (
    ALLOCATION_EPSILON,
    Conflict,
    DailyAllocation,
    compute_daily_allocation,
    daily_shares,
    detect_over_allocations,
)
from .service import LevelingOutcome, LevelingService, LevelingStats, leveling_stats
from .shifts import (
    AppliedShift,
    LevelingApplication,
    LevelingPreview,
    LevelingStatus,
    ProposedShift,
    apply_shifts,
    propose_shifts,
)

__all__ = [
    # Allocation
    "ALLOCATION_EPSILON",
    "Conflict",
    "DailyAllocation",
    "compute_daily_allocation",
    "daily_shares",
    "detect_over_allocations",
    # Shifts
    "AppliedShift",
    "LevelingApplication",
    "LevelingPreview",
    "LevelingStatus",
    "ProposedShift",
    "apply_shifts",
    "propose_shifts",
    # Service
    "LevelingOutcome",
    "LevelingService",
    "LevelingStats",
    "leveling_stats",
]
