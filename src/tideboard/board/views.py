"""Calendar-style read models: day, week, month and year agendas.

Stored tasks appear on their due date (appointments without one on their
start date); recurring templates contribute freshly expanded occurrences.
Nothing here mutates the board.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Optional

from .engine import BoardStore
from .model import Task, TaskKind
from .ordering import sort_by_priority
from .recurrence import expand_all


def calendar_date(task: Task) -> Optional[date]:
    if task.due_date is not None:
        return task.due_date
    if task.kind == TaskKind.APPOINTMENT:
        return task.start_date
    return None


def agenda_for_range(
    store: BoardStore,
    first: date,
    last: date,
    *,
    block_id: Optional[str] = None,
) -> dict[date, list[Task]]:
    """Map every day in ``[first, last]`` to its tasks and occurrences."""
    days: dict[date, list[Task]] = {}
    if last < first:
        return days
    day = first
    while day <= last:
        days[day] = []
        day += timedelta(days=1)

    for task in store.state.all_tasks():
        if block_id is not None and task.block_id != block_id:
            continue
        when = calendar_date(task)
        if when is not None and first <= when <= last:
            days[when].append(task)

    templates = store.list_recurring_tasks(block_id)
    for occ in expand_all(templates, first, last, entry_column=store.columns.entry_id):
        days[occ.due_date].append(occ)  # type: ignore[index]

    return {d: sort_by_priority(tasks) for d, tasks in days.items()}


def agenda_for_date(store: BoardStore, day: date, *, block_id: Optional[str] = None) -> list[Task]:
    return agenda_for_range(store, day, day, block_id=block_id)[day]


def week_bounds(year: int, week: int) -> tuple[date, date]:
    """Monday and Sunday of ISO week *week* of *year*."""
    monday = date.fromisocalendar(year, week, 1)
    return monday, monday + timedelta(days=6)


def agenda_for_week(
    store: BoardStore,
    year: int,
    week: int,
    *,
    block_id: Optional[str] = None,
) -> dict[date, list[Task]]:
    first, last = week_bounds(year, week)
    return agenda_for_range(store, first, last, block_id=block_id)


def agenda_for_month(
    store: BoardStore,
    year: int,
    month: int,
    *,
    block_id: Optional[str] = None,
) -> dict[date, list[Task]]:
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return agenda_for_range(store, first, last, block_id=block_id)


def month_counts(store: BoardStore, year: int) -> dict[int, int]:
    """Number of dated items per month of *year* (the yearly overview)."""
    agenda = agenda_for_range(store, date(year, 1, 1), date(year, 12, 31))
    counts = {m: 0 for m in range(1, 13)}
    for day, tasks in agenda.items():
        counts[day.month] += len(tasks)
    return counts
