"""
Due-date arithmetic for recurring financial transactions.

Pure functions, no database access. Month and year steps clamp to the last day of the
target month using the anchor day captured from the first occurrence of the series, so a
short February never shrinks the months that follow it.
"""
from __future__ import annotations

import calendar
import enum
from collections.abc import Iterator
from datetime import date, timedelta

FALLBACK_OCCURRENCES = 60


class RecurrenceError(ValueError):
    pass


class RecurrenceType(str, enum.Enum):
    NONE = "none"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def normalize_recurrence_type(value: str | RecurrenceType | None) -> RecurrenceType:
    if isinstance(value, RecurrenceType):
        return value
    raw = (value or "none").strip().lower()
    try:
        return RecurrenceType(raw)
    except ValueError as exc:
        raise RecurrenceError(f"Unknown recurrence type: {value!r}") from exc


def clamp_day(year: int, month: int, day: int) -> int:
    """Clamp day to the valid range for the given year/month."""
    return min(day, calendar.monthrange(year, month)[1])


def add_months(d: date, n: int, day_of_month: int | None = None) -> date:
    """Add n months to d. The day is day_of_month (default d.day), clamped to the month end."""
    month_index = d.month - 1 + n
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    if not date.min.year <= year <= date.max.year:
        raise RecurrenceError(f"Date out of range: {n} months after {d.isoformat()}")
    return date(year, month, clamp_day(year, month, day_of_month or d.day))


def next_due_date(
    current_due_date: date,
    recurrence_type: str | RecurrenceType,
    day_of_month: int | None = None,
    end_date: date | None = None,
) -> date | None:
    """
    Return the due date following current_due_date, or None when it falls after end_date.

    day_of_month is the anchor day of the series (the first occurrence's day). When omitted
    the current date's day is used, which is only correct for the first step.
    """
    kind = normalize_recurrence_type(recurrence_type)
    anchor = day_of_month or current_due_date.day
    if not 1 <= anchor <= 31:
        raise RecurrenceError(f"Invalid day of month: {anchor}")

    if kind == RecurrenceType.WEEKLY:
        try:
            nxt = current_due_date + timedelta(days=7)
        except OverflowError as exc:
            raise RecurrenceError(f"Date out of range: week after {current_due_date.isoformat()}") from exc
    elif kind == RecurrenceType.MONTHLY:
        nxt = add_months(current_due_date, 1, anchor)
    elif kind == RecurrenceType.YEARLY:
        nxt = add_months(current_due_date, 12, anchor)
    else:
        raise RecurrenceError("Transaction does not recur")

    if end_date is not None and nxt > end_date:
        return None
    return nxt


def occurrence_dates(
    first_due_date: date,
    recurrence_type: str | RecurrenceType,
    count: int = 0,
    end_date: date | None = None,
    day_of_month: int | None = None,
    limit: int = FALLBACK_OCCURRENCES,
) -> Iterator[date]:
    """
    Yield every due date of a series, starting with first_due_date.

    A positive count bounds the series by itself. Otherwise the series runs until end_date,
    and never past `limit` occurrences.
    """
    if count < 0:
        raise RecurrenceError("Recurrence count cannot be negative")
    if end_date is not None and end_date < first_due_date:
        raise RecurrenceError("Recurrence end date is before the first due date")
    kind = normalize_recurrence_type(recurrence_type)
    anchor = day_of_month or first_due_date.day
    total = count if count > 0 else limit

    current: date | None = first_due_date
    produced = 0
    while current is not None and produced < total:
        yield current
        produced += 1
        if kind == RecurrenceType.NONE:
            return
        current = next_due_date(current, kind, anchor, end_date)
