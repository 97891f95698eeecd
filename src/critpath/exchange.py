"""Import and export of calendar exceptions as JSON, CSV or iCalendar text.

Formats:

- JSON: an array of ``{date, type, reason, description, isWorkingDay, workingHours}``
- CSV: header ``Date,Type,Reason,Description,Working Hours,Is Working Day``,
  every field quoted, booleans written as Yes/No
- ICS: one all-day VEVENT per exception. Type, working flag and hours travel
  in ``X-CRITPATH-*`` properties so a round trip is lossless.

Nothing here touches the filesystem; callers pass and receive strings.
"""

from __future__ import annotations

import csv
import datetime as dt
import io
import json
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .calendar import CalendarException, ExceptionType
from .calendar_exceptions import MAX_EXCEPTION_RANGE_DAYS
from .exceptions import ParseError
from .logger import get_logger

logger = get_logger()

CSV_HEADERS = ["Date", "Type", "Reason", "Description", "Working Hours", "Is Working Day"]

ICS_PRODID = "-//Critpath//Calendar Exceptions//EN"
ICS_LINE_LIMIT = 75


class ExchangeFormat(str, Enum):
    """Supported interchange formats."""

    JSON = "json"
    CSV = "csv"
    ICS = "ics"

    @classmethod
    def parse(cls, value: ExchangeFormat | str) -> ExchangeFormat:
        if isinstance(value, ExchangeFormat):
            return value
        try:
            return cls(str(value).strip().lower().lstrip("."))
        except ValueError as e:
            raise ValueError(f"Unsupported exchange format: {value}") from e

    @classmethod
    def from_path(cls, path: Path | str) -> ExchangeFormat:
        """Infer the format from a file extension (``.ical`` counts as ICS)."""
        suffix = Path(path).suffix.lower()
        if suffix == ".ical":
            return cls.ICS
        return cls.parse(suffix)


def export_exceptions(
    exceptions: list[CalendarException], fmt: ExchangeFormat | str = ExchangeFormat.JSON
) -> str:
    """Serialise exceptions; an empty list exports as an empty string."""
    fmt = ExchangeFormat.parse(fmt)
    if not exceptions:
        return ""
    if fmt is ExchangeFormat.JSON:
        return json.dumps([exception.to_dict() for exception in exceptions], indent=2)
    if fmt is ExchangeFormat.CSV:
        return _export_csv(exceptions)
    return _export_ics(exceptions)


def import_exceptions(
    text: str, fmt: ExchangeFormat | str = ExchangeFormat.JSON
) -> list[CalendarException]:
    """Parse exceptions from text, raising ParseError on malformed input."""
    fmt = ExchangeFormat.parse(fmt)
    # Spreadsheet exports often start with a byte order mark
    text = text.lstrip("\ufeff") if text else text
    if not text or not text.strip():
        return []
    if fmt is ExchangeFormat.JSON:
        return _import_json(text)
    if fmt is ExchangeFormat.CSV:
        return _import_csv(text)
    return _import_ics(text)


def _build_exception(data: dict[str, Any], where: str) -> CalendarException:
    try:
        return CalendarException.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError(f"Invalid exception in {where}: {e}") from e


def _format_hours(hours: float) -> str:
    if hours == int(hours):
        return str(int(hours))
    return str(hours)


# JSON


def _import_json(text: str) -> list[CalendarException]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON format: {e}") from e

    items = data if isinstance(data, list) else [data]
    exceptions: list[CalendarException] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ParseError(f"JSON item {index} must be an object")
        exceptions.append(_build_exception(item, f"JSON item {index}"))
    return exceptions


# CSV


def _export_csv(exceptions: list[CalendarException]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for exception in exceptions:
        writer.writerow(
            [
                exception.date.isoformat(),
                exception.type.value,
                exception.reason,
                exception.description,
                _format_hours(exception.working_hours),
                "Yes" if exception.is_working_day else "No",
            ]
        )
    return output.getvalue().rstrip("\n")


def _parse_hours(value: str, where: str) -> float:
    if not value:
        return 0.0
    try:
        return float(value)
    except ValueError as e:
        raise ParseError(f"Invalid working hours '{value}' in {where}") from e


def _import_csv(text: str) -> list[CalendarException]:
    reader = csv.reader(io.StringIO(text.strip()))
    try:
        header = next(reader)
    except StopIteration:
        return []
    columns = {name.strip().lower(): index for index, name in enumerate(header)}
    if "date" not in columns:
        raise ParseError("CSV header must include a 'Date' column")

    def cell(row: list[str], name: str) -> str:
        index = columns.get(name)
        if index is None or index >= len(row):
            return ""
        return row[index].strip()

    exceptions: list[CalendarException] = []
    for line_number, row in enumerate(reader, start=2):
        if not any(value.strip() for value in row):
            continue
        where = f"CSV line {line_number}"
        day = cell(row, "date")
        if not day:
            logger.warning(f"Skipping {where}: no date")
            continue
        exceptions.append(
            _build_exception(
                {
                    "date": day,
                    "type": cell(row, "type"),
                    "reason": cell(row, "reason"),
                    "description": cell(row, "description"),
                    "working_hours": _parse_hours(cell(row, "working hours"), where),
                    "is_working_day": cell(row, "is working day").lower() in ("yes", "true", "1"),
                },
                where,
            )
        )
    return exceptions


# iCalendar


def _escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def _unescape_text(value: str) -> str:
    result: list[str] = []
    chars = iter(value)
    for char in chars:
        if char != "\\":
            result.append(char)
            continue
        following = next(chars, "")
        result.append("\n" if following in ("n", "N") else following)
    return "".join(result)


def _fold(line: str) -> list[str]:
    """Split a content line so no physical line exceeds the ICS octet limit.

    Continuation lines start with a space, which counts towards the limit.
    Multi-byte characters are never split.
    """
    if len(line.encode("utf-8")) <= ICS_LINE_LIMIT:
        return [line]
    parts: list[str] = []
    current, size = "", 0
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > ICS_LINE_LIMIT:
            parts.append(current)
            current, size = " ", 1
        current += char
        size += width
    parts.append(current)
    return parts


def _export_ics(exceptions: list[CalendarException]) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{ICS_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    for exception in exceptions:
        day = exception.date
        event = [
            "BEGIN:VEVENT",
            f"UID:{day.strftime('%Y%m%d')}-{exception.type.value}@critpath",
            f"DTSTART;VALUE=DATE:{day.strftime('%Y%m%d')}",
            f"DTEND;VALUE=DATE:{(day + dt.timedelta(days=1)).strftime('%Y%m%d')}",
            f"SUMMARY:{_escape_text(exception.reason)}",
            f"DESCRIPTION:{_escape_text(exception.description)}",
            f"X-CRITPATH-TYPE:{exception.type.value}",
            f"X-CRITPATH-WORKING-DAY:{'TRUE' if exception.is_working_day else 'FALSE'}",
            f"X-CRITPATH-WORKING-HOURS:{_format_hours(exception.working_hours)}",
            "END:VEVENT",
        ]
        for line in event:
            lines.extend(_fold(line))
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines)


def _unfold(text: str) -> list[str]:
    lines: list[str] = []
    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if raw[:1] in (" ", "\t") and lines:
            lines[-1] += raw[1:]
        elif raw.strip():
            lines.append(raw)
    return lines


def _parse_ics_date(value: str, where: str) -> tuple[dt.date, bool]:
    """Return the date and whether the value carried a time component."""
    text = value.strip()
    try:
        day = dt.datetime.strptime(text[:8], "%Y%m%d").date()
    except ValueError as e:
        raise ParseError(f"Invalid date '{value}' in {where}") from e
    return day, "T" in text


def _event_days(props: dict[str, str], where: str) -> list[dt.date]:
    if "DTSTART" not in props:
        raise ParseError(f"{where} has no DTSTART")
    start, _ = _parse_ics_date(props["DTSTART"], where)
    if "DTEND" not in props:
        return [start]

    end, has_time = _parse_ics_date(props["DTEND"], where)
    midnight = props["DTEND"].strip()[9:15] in ("", "000000")
    # DATE ends are exclusive; a DATE-TIME end counts its own day unless it is midnight
    last = end - dt.timedelta(days=1) if (not has_time or midnight) else end
    if last < start:
        last = start
    span = (last - start).days + 1
    if span > MAX_EXCEPTION_RANGE_DAYS:
        raise ParseError(f"{where} spans {span} days (max {MAX_EXCEPTION_RANGE_DAYS})")
    return [start + dt.timedelta(days=offset) for offset in range(span)]


def _import_ics(text: str) -> list[CalendarException]:
    lines = _unfold(text)
    if not lines or lines[0].strip().upper() != "BEGIN:VCALENDAR":
        raise ParseError("iCalendar data must start with BEGIN:VCALENDAR")

    exceptions: list[CalendarException] = []
    props: dict[str, str] | None = None
    event_count = 0
    for line in lines:
        stripped = line.strip()
        upper = stripped.upper()
        if upper == "BEGIN:VEVENT":
            props = {}
            event_count += 1
            continue
        if upper == "END:VEVENT":
            if props is None:
                raise ParseError("END:VEVENT without BEGIN:VEVENT")
            exceptions.extend(_exceptions_from_event(props, f"VEVENT {event_count}"))
            props = None
            continue
        if props is None or ":" not in stripped:
            continue
        name_part, value = stripped.split(":", 1)
        name = name_part.split(";", 1)[0].upper()
        props[name] = value

    if props is not None:
        raise ParseError("Unterminated VEVENT")
    return exceptions


def _exceptions_from_event(props: dict[str, str], where: str) -> list[CalendarException]:
    raw_type = props.get("X-CRITPATH-TYPE", "").strip()
    working_day = props.get("X-CRITPATH-WORKING-DAY", "FALSE").strip().upper() == "TRUE"
    hours = _parse_hours(props.get("X-CRITPATH-WORKING-HOURS", "").strip(), where)
    fields = {
        "type": raw_type or ExceptionType.CUSTOM,
        "reason": _unescape_text(props.get("SUMMARY", "")).strip(),
        "description": _unescape_text(props.get("DESCRIPTION", "")).strip(),
        "is_working_day": working_day,
        "working_hours": hours,
    }
    return [_build_exception({"date": day, **fields}, where) for day in _event_days(props, where)]
