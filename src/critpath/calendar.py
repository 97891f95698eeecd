"""Working-time calendars and working-day arithmetic.

A calendar decides which dates count towards durations and lags:

- an exception for the date wins (it can make a holiday or weekend working,
  or a normal weekday non-working);
- otherwise a holiday is non-working;
- otherwise the weekday flag decides.

All arithmetic is in whole working days. Searches are bounded so a calendar
without any working day raises CalendarConfigurationError instead of looping.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from .exceptions import CalendarConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .models import Task

# Ten years without a working day means the calendar is misconfigured
MAX_SEARCH_DAYS = 3653

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _coerce_date(value: Any) -> Any:
    """Drop any time component from a date-like input."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if "T" in text:
            return text.split("T", 1)[0]
        if " " in text:
            return text.split(" ", 1)[0]
        return text
    return value


class ExceptionType(str, Enum):
    """Kinds of calendar exception."""

    HOLIDAY = "holiday"
    SITE_SHUTDOWN = "site_shutdown"
    MAINTENANCE = "maintenance"
    WEATHER = "weather"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: ExceptionType | str) -> ExceptionType:
        """Accept enum values, names and display forms ("Site Shutdown")."""
        if isinstance(value, ExceptionType):
            return value
        return cls(str(value).strip().lower().replace(" ", "_").replace("-", "_"))


DEFAULT_REASONS: dict[ExceptionType, str] = {
    ExceptionType.HOLIDAY: "Public Holiday",
    ExceptionType.SITE_SHUTDOWN: "Site Shutdown",
    ExceptionType.MAINTENANCE: "Maintenance Day",
    ExceptionType.WEATHER: "Weather Delay",
    ExceptionType.CUSTOM: "Custom Exception",
}


class CalendarException(BaseModel):
    """A single-date override of the weekday and holiday rules.

    Serialises with camelCase keys (``isWorkingDay``, ``workingHours``) for
    interchange; Python code uses the snake_case names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: dt.date
    type: ExceptionType = ExceptionType.CUSTOM
    reason: str = ""
    description: str = ""
    is_working_day: bool = Field(default=False, alias="isWorkingDay")
    working_hours: float = Field(default=0.0, alias="workingHours", ge=0, le=24)

    @model_validator(mode="before")
    @classmethod
    def fill_default_reason(cls, data: Any) -> Any:
        """Use the type's default reason when none is given."""
        if not isinstance(data, dict) or data.get("reason"):
            return data
        try:
            exception_type = ExceptionType.parse(data.get("type") or ExceptionType.CUSTOM)
        except ValueError:
            return data  # Field validation reports the bad type
        return {**data, "reason": DEFAULT_REASONS[exception_type]}

    @field_validator("date", mode="before")
    @classmethod
    def canonical_date(cls, v: Any) -> Any:
        """Exception dates are date-only."""
        return _coerce_date(v)

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, v: Any) -> Any:
        """Accept display forms of the exception type."""
        if v is None or v == "":
            return ExceptionType.CUSTOM
        try:
            return ExceptionType.parse(v)
        except ValueError:
            return v

    def to_dict(self) -> dict[str, Any]:
        """Interchange form: date, type, reason, description, isWorkingDay, workingHours."""
        return self.model_dump(mode="json", by_alias=True)


class WorkingDays(BaseModel):
    """Weekday working flags (Monday to Friday by default)."""

    model_config = ConfigDict(frozen=True)

    monday: bool = True
    tuesday: bool = True
    wednesday: bool = True
    thursday: bool = True
    friday: bool = True
    saturday: bool = False
    sunday: bool = False

    def is_working(self, weekday: int) -> bool:
        """Flag for a ``date.weekday()`` index (0 = Monday)."""
        return bool(getattr(self, WEEKDAY_NAMES[weekday]))


class WeekdayHours(BaseModel):
    """Default working hours per weekday, used for reporting only."""

    model_config = ConfigDict(frozen=True)

    monday: float = Field(default=8.0, ge=0, le=24)
    tuesday: float = Field(default=8.0, ge=0, le=24)
    wednesday: float = Field(default=8.0, ge=0, le=24)
    thursday: float = Field(default=8.0, ge=0, le=24)
    friday: float = Field(default=8.0, ge=0, le=24)
    saturday: float = Field(default=0.0, ge=0, le=24)
    sunday: float = Field(default=0.0, ge=0, le=24)

    def hours(self, weekday: int) -> float:
        """Hours for a ``date.weekday()`` index (0 = Monday)."""
        return float(getattr(self, WEEKDAY_NAMES[weekday]))


class Calendar(BaseModel):
    """Working-time calendar: weekday flags, holidays and dated exceptions.

    Calendars are immutable; use ``replace()`` (or the helpers in
    ``critpath.calendar_exceptions``) to derive a modified copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str = "global"
    name: str = "Global Calendar"
    working_days: WorkingDays = Field(default_factory=WorkingDays)
    weekday_hours: WeekdayHours = Field(default_factory=WeekdayHours)
    holidays: list[dt.date] = Field(default_factory=list)
    exceptions: list[CalendarException] = Field(default_factory=list)

    _holiday_set: frozenset[dt.date] = PrivateAttr(default_factory=frozenset)
    _exception_index: dict[dt.date, CalendarException] = PrivateAttr(default_factory=dict)

    @field_validator("holidays", mode="before")
    @classmethod
    def canonical_holidays(cls, v: Any) -> Any:
        """Holiday dates are date-only."""
        if isinstance(v, (list, tuple, set, frozenset)):
            return sorted({_coerce_date(item) for item in v}, key=str)
        return v

    @field_validator("exceptions")
    @classmethod
    def sorted_unique_exceptions(cls, v: list[CalendarException]) -> list[CalendarException]:
        """Keep exceptions ordered by date with at most one per date."""
        seen: set[dt.date] = set()
        for exception in v:
            if exception.date in seen:
                raise ValueError(f"Duplicate calendar exception for {exception.date.isoformat()}")
            seen.add(exception.date)
        return sorted(v, key=lambda e: e.date)

    def model_post_init(self, __context: Any) -> None:
        """Build lookup indexes once; the model is frozen so they never go stale."""
        self._holiday_set = frozenset(self.holidays)
        self._exception_index = {exception.date: exception for exception in self.exceptions}

    def replace(self, **changes: Any) -> Calendar:
        """Return a validated copy with the given fields replaced."""
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(changes)
        return type(self).model_validate(data)

    def exception_for(self, day: dt.date) -> CalendarException | None:
        """The exception overriding ``day``, if any."""
        return self._exception_index.get(day)

    def is_holiday(self, day: dt.date) -> bool:
        """Whether ``day`` is in the holiday list."""
        return day in self._holiday_set

    def is_working_day(self, day: dt.date) -> bool:
        """Exception first, then holiday membership, then the weekday flag."""
        exception = self._exception_index.get(day)
        if exception is not None:
            return exception.is_working_day
        if day in self._holiday_set:
            return False
        return self.working_days.is_working(day.weekday())

    def working_hours(self, day: dt.date) -> float:
        """Exception hours if present, else the weekday default.

        Holiday membership alone does not change the hours.
        """
        exception = self._exception_index.get(day)
        if exception is not None:
            return exception.working_hours
        return self.weekday_hours.hours(day.weekday())

    @property
    def has_working_days(self) -> bool:
        """False when no weekday is flagged and no exception adds a working day."""
        if any(self.working_days.is_working(weekday) for weekday in range(7)):
            return True
        return any(exception.is_working_day for exception in self.exceptions)


def _step_to_working_day(start: dt.date, step: dt.timedelta, calendar: Calendar) -> dt.date:
    """Move from ``start`` by ``step`` until a working day is reached."""
    current = start
    for _ in range(MAX_SEARCH_DAYS):
        current += step
        if calendar.is_working_day(current):
            return current
    raise CalendarConfigurationError(
        f"Calendar '{calendar.id}' has no working day within {MAX_SEARCH_DAYS} days "
        f"of {start.isoformat()}"
    )


def add_working_units(start: dt.date, units: int, calendar: Calendar) -> dt.date:
    """Step ``units`` working days forwards (or backwards when negative).

    Zero returns ``start`` unchanged, even if it is not a working day.
    """
    if units == 0:
        return start
    step = dt.timedelta(days=1 if units > 0 else -1)
    current = start
    for _ in range(abs(units)):
        current = _step_to_working_day(current, step, calendar)
    return current


def snap_to_working_day(day: dt.date, calendar: Calendar, *, backward: bool = False) -> dt.date:
    """Return ``day`` if it is a working day, else the next (or previous) one."""
    if calendar.is_working_day(day):
        return day
    step = dt.timedelta(days=-1 if backward else 1)
    return _step_to_working_day(day, step, calendar)


def diff_working_units(start: dt.date, end: dt.date, calendar: Calendar) -> int:
    """Signed working-day distance from ``start`` to ``end``.

    For working days ``a`` and ``b``, ``add_working_units(a, diff_working_units(a, b)) == b``.
    """
    if end == start:
        return 0
    if end > start:
        return count_working_days(start + dt.timedelta(days=1), end, calendar)
    return -count_working_days(end, start - dt.timedelta(days=1), calendar)


def count_working_days(start: dt.date, end: dt.date, calendar: Calendar) -> int:
    """Number of working days in the inclusive range (0 if ``end < start``)."""
    count = 0
    current = start
    one_day = dt.timedelta(days=1)
    while current <= end:
        if calendar.is_working_day(current):
            count += 1
        current += one_day
    return count


def resolve_calendar(
    task: Task,
    default: Calendar,
    calendars: Mapping[str, Calendar] | None = None,
) -> Calendar:
    """The task's own calendar when it names a known one, else the project default."""
    if task.calendar_ref and calendars and task.calendar_ref in calendars:
        return calendars[task.calendar_ref]
    return default


def validate_calendar(calendar: Calendar) -> list[str]:
    """Return configuration errors for a calendar (empty list = valid)."""
    errors: list[str] = []
    if not calendar.name.strip():
        errors.append(f"Calendar '{calendar.id}': name is required")
    if not calendar.has_working_days:
        errors.append(f"Calendar '{calendar.id}' has no working days")
    return errors
