"""Creation, validation and bookkeeping of calendar exceptions.

Every helper that changes a calendar returns a new Calendar; the input is
left untouched.
"""

from __future__ import annotations

import datetime as dt
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .calendar import Calendar, CalendarException, ExceptionType
from .exceptions import ValidationError
from .logger import get_logger

logger = get_logger()

MAX_EXCEPTION_RANGE_DAYS = 365
LONG_RANGE_WARNING_DAYS = 30
MAX_DESCRIPTION_LENGTH = 500


def _default_str_list() -> list[str]:
    return []


@dataclass
class ExceptionCheck:
    """Outcome of validating an exception against a calendar."""

    errors: list[str] = field(default_factory=_default_str_list)
    warnings: list[str] = field(default_factory=_default_str_list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class ExceptionStatistics:
    """Counts of exceptions by type, by month and by working status."""

    total: int
    by_type: dict[str, int]
    by_month: dict[str, int]
    working_days: int
    non_working_days: int


def create_exception(  # noqa: PLR0913 - mirrors the exception fields
    day: dt.date | str,
    exception_type: ExceptionType | str = ExceptionType.CUSTOM,
    reason: str = "",
    description: str = "",
    *,
    is_working_day: bool = False,
    working_hours: float = 0.0,
) -> CalendarException:
    """Build an exception, raising ValidationError for invalid fields."""
    try:
        return CalendarException.model_validate(
            {
                "date": day,
                "type": exception_type,
                "reason": reason,
                "description": description,
                "is_working_day": is_working_day,
                "working_hours": working_hours,
            }
        )
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid calendar exception: {e}") from e


def create_range_exceptions(
    start: dt.date,
    end: dt.date,
    exception_type: ExceptionType | str = ExceptionType.CUSTOM,
    reason: str = "",
    description: str = "",
) -> list[CalendarException]:
    """One non-working exception per day of the inclusive range."""
    if start > end:
        raise ValidationError("Start date must be before or equal to end date")
    days = (end - start).days + 1
    if days > MAX_EXCEPTION_RANGE_DAYS:
        raise ValidationError(f"Date range cannot exceed {MAX_EXCEPTION_RANGE_DAYS} days")
    return [
        create_exception(start + dt.timedelta(days=offset), exception_type, reason, description)
        for offset in range(days)
    ]


def validate_exception(
    exception: CalendarException,
    existing: list[CalendarException],
    today: dt.date | None = None,
) -> ExceptionCheck:
    """Check an exception against the ones already on a calendar.

    Errors block the change; warnings are informational.
    """
    check = ExceptionCheck()
    if not exception.reason.strip():
        check.errors.append("Exception reason is required")
    if any(other.date == exception.date for other in existing):
        check.errors.append(f"Exception already exists for {exception.date.isoformat()}")
    if len(exception.description) > MAX_DESCRIPTION_LENGTH:
        check.warnings.append(
            f"Description is very long (max {MAX_DESCRIPTION_LENGTH} characters recommended)"
        )
    if today is not None and exception.date < today:
        check.warnings.append("Exception date is in the past")
    return check


def add_exception(calendar: Calendar, exception: CalendarException) -> Calendar:
    """Return a copy of ``calendar`` with ``exception`` added."""
    check = validate_exception(exception, calendar.exceptions)
    if not check.is_valid:
        raise ValidationError(f"Invalid exception: {', '.join(check.errors)}")
    logger.changes(
        f"Calendar '{calendar.id}': adding {exception.type.value} exception "
        f"on {exception.date.isoformat()}"
    )
    return calendar.replace(exceptions=[*calendar.exceptions, exception])


def add_range_exceptions(  # noqa: PLR0913 - mirrors create_range_exceptions
    calendar: Calendar,
    start: dt.date,
    end: dt.date,
    exception_type: ExceptionType | str = ExceptionType.CUSTOM,
    reason: str = "",
    description: str = "",
) -> Calendar:
    """Return a copy of ``calendar`` with one exception per day of the range."""
    new_exceptions = create_range_exceptions(start, end, exception_type, reason, description)
    taken = {exception.date for exception in calendar.exceptions}
    clashes = [e.date.isoformat() for e in new_exceptions if e.date in taken]
    if clashes:
        listed = ", ".join(clashes[:5]) + ("..." if len(clashes) > 5 else "")  # noqa: PLR2004
        raise ValidationError(f"Exceptions already exist for: {listed}")
    if len(new_exceptions) > LONG_RANGE_WARNING_DAYS:
        logger.warning(
            f"Adding {len(new_exceptions)} exceptions to calendar '{calendar.id}' - "
            "consider breaking into smaller periods"
        )
    return calendar.replace(exceptions=[*calendar.exceptions, *new_exceptions])


def remove_exception(calendar: Calendar, day: dt.date) -> Calendar:
    """Return a copy of ``calendar`` without the exception on ``day`` (no-op if absent)."""
    remaining = [exception for exception in calendar.exceptions if exception.date != day]
    if len(remaining) == len(calendar.exceptions):
        return calendar
    return calendar.replace(exceptions=remaining)


def update_exception(calendar: Calendar, day: dt.date, **changes: Any) -> Calendar:
    """Return a copy of ``calendar`` with the exception on ``day`` updated.

    ``changes`` use the snake_case field names. Moving the exception to
    another date is allowed as long as that date is free.
    """
    current = calendar.exception_for(day)
    if current is None:
        raise ValidationError(f"No exception found for {day.isoformat()}")

    data = current.model_dump()
    data.update(changes)
    try:
        updated = CalendarException.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid exception update: {e}") from e

    others = [exception for exception in calendar.exceptions if exception.date != day]
    check = validate_exception(updated, others)
    if not check.is_valid:
        raise ValidationError(f"Invalid exception update: {', '.join(check.errors)}")
    return calendar.replace(exceptions=[*others, updated])


def exceptions_in_range(
    exceptions: list[CalendarException], start: dt.date, end: dt.date
) -> list[CalendarException]:
    """Exceptions dated within the inclusive range."""
    return [exception for exception in exceptions if start <= exception.date <= end]


def exceptions_by_type(
    exceptions: list[CalendarException], exception_type: ExceptionType | str
) -> list[CalendarException]:
    """Exceptions of one type."""
    wanted = ExceptionType.parse(exception_type)
    return [exception for exception in exceptions if exception.type == wanted]


def exception_statistics(exceptions: list[CalendarException]) -> ExceptionStatistics:
    """Summarise exceptions by type, month and working status."""
    by_type = Counter(exception.type.value for exception in exceptions)
    by_month = Counter(exception.date.strftime("%Y-%m") for exception in exceptions)
    working = sum(1 for exception in exceptions if exception.is_working_day)
    return ExceptionStatistics(
        total=len(exceptions),
        by_type=dict(by_type),
        by_month=dict(sorted(by_month.items())),
        working_days=working,
        non_working_days=len(exceptions) - working,
    )
