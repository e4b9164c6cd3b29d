"""Recurrence expansion: RecurringTask template × date(s) → occurrences.

All functions here are pure. They never touch a board, and repeated calls
with the same arguments produce equal occurrences (ids included), so
callers may memoize them freely.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, Iterator, Optional

from ..constants import ENTRY_COLUMN_ID
from .model import RecurringTask, Task, TaskKind, Weekday, parse_weekdays


def occurrence_id(template_id: str, day: date) -> str:
    """Stable id of the occurrence of *template_id* on *day*."""
    return f"{template_id}@{day.isoformat()}"


def occurs_on(template: RecurringTask, day: date) -> bool:
    """Apply the four occurrence checks, in order, for a single day."""
    if not template.recurring_days:
        return False
    if Weekday.of(day) not in template.weekday_set:
        return False
    if template.start_date is not None and day < template.start_date:
        return False
    if template.due_date is not None and day > template.due_date:
        return False
    return True


def _materialize(template: RecurringTask, day: date, column: str) -> Task:
    return Task(
        id=occurrence_id(template.id, day),
        title=template.title,
        description=template.description,
        priority=template.priority,
        column=column,
        block_id=template.block_id,
        kind=TaskKind.OCCURRENCE,
        created_at=template.created_at,
        start_date=day,
        due_date=day,
        recurring_days=list(template.recurring_days),
        recurring_time=template.recurring_time,
        template_id=template.id,
    )


def expand_for_date(
    template: RecurringTask,
    day: date,
    *,
    entry_column: str = ENTRY_COLUMN_ID,
) -> Optional[Task]:
    """Return the occurrence of *template* on *day*, or None."""
    if not occurs_on(template, day):
        return None
    return _materialize(template, day, entry_column)


def expand_for_range(
    template: RecurringTask,
    first: date,
    last: date,
    *,
    entry_column: str = ENTRY_COLUMN_ID,
) -> list[Task]:
    """Occurrences of *template* between *first* and *last*, both inclusive."""
    if last < first or not template.recurring_days:
        return []
    # Clamp to the template window; the per-day checks still decide.
    lo = max(first, template.start_date) if template.start_date else first
    hi = min(last, template.due_date) if template.due_date else last
    out: list[Task] = []
    for day in _days(lo, hi):
        occ = expand_for_date(template, day, entry_column=entry_column)
        if occ is not None:
            out.append(occ)
    return out


def expand_for_month(
    template: RecurringTask,
    year: int,
    month: int,
    *,
    entry_column: str = ENTRY_COLUMN_ID,
) -> list[Task]:
    """Occurrences of *template* in the given calendar month."""
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    if template.start_date and template.start_date > last:
        return []
    if template.due_date and template.due_date < first:
        return []
    return expand_for_range(template, first, last, entry_column=entry_column)


def expand_all(
    templates: Iterable[RecurringTask],
    first: date,
    last: date,
    *,
    entry_column: str = ENTRY_COLUMN_ID,
) -> list[Task]:
    """Expand several templates over a range, ordered by date then template order."""
    out: list[Task] = []
    for template in templates:
        out.extend(expand_for_range(template, first, last, entry_column=entry_column))
    out.sort(key=lambda t: t.due_date or first)
    return out


def next_matching_weekday(reference: date, days: Iterable[Weekday | str]) -> Optional[date]:
    """First date on or after *reference* whose weekday is in *days*."""
    wanted = set(parse_weekdays(days))
    if not wanted:
        return None
    for offset in range(7):
        candidate = reference + timedelta(days=offset)
        if Weekday.of(candidate) in wanted:
            return candidate
    return None


def _days(first: date, last: date) -> Iterator[date]:
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)
