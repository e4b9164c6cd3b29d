"""Ordering rules for task listings and block collections.

Listings are ranked by two strategies applied in turn: the done partition
(terminal-column tasks first), then priority descending / created_at
ascending within each partition. Both sorts are stable, so the second
strategy never reorders across the partition boundary.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .model import Task


def priority_key(task: Task) -> tuple[int, object]:
    return (-task.priority.rank, task.created_at)


def sort_by_priority(tasks: Iterable[Task]) -> list[Task]:
    """High → low priority; oldest first within a priority."""
    return sorted(tasks, key=priority_key)


def partition_done_first(tasks: Iterable[Task], terminal_column: str) -> list[Task]:
    """Stable partition: terminal-column tasks before all others."""
    items = list(tasks)
    return [t for t in items if t.column == terminal_column] + [
        t for t in items if t.column != terminal_column
    ]


def reorganize_done_at_top(tasks: Iterable[Task], terminal_column: str) -> list[Task]:
    """Block collection order after a task reaches the terminal column.

    Terminal tasks form a prefix ordered by descending ``created_at``; the
    remaining tasks keep their relative order.
    """
    items = list(tasks)
    done = sorted(
        (t for t in items if t.column == terminal_column),
        key=lambda t: t.created_at,
        reverse=True,
    )
    return done + [t for t in items if t.column != terminal_column]


def filter_tasks(tasks: Iterable[Task], search: Optional[str] = None) -> list[Task]:
    if not search:
        return list(tasks)
    return [t for t in tasks if t.matches(search)]


def rank_tasks(
    tasks: Iterable[Task],
    terminal_column: str,
    search: Optional[str] = None,
) -> list[Task]:
    """Filter, then apply the priority comparator and the done partition."""
    ranked = sort_by_priority(filter_tasks(tasks, search))
    return partition_done_first(ranked, terminal_column)
