"""Domain model for the board: tasks, recurring templates, blocks and columns.

Everything here is plain data plus (de)serialization. Dates are kept as
:class:`datetime.date` and creation stamps as timezone-aware
:class:`datetime.datetime` so that a snapshot round-trip reproduces them
exactly; an absent ``due_date`` stays ``None`` all the way through.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

from ..constants import ENTRY_COLUMN_ID, WEEKDAY_TAGS
from ..utils import (
    _format_date,
    _normalize_time_of_day,
    _now,
    _parse_date,
    _parse_iso,
    _today,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskPriority(str, Enum):
    """Priority level; ``high`` sorts first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 1, "medium": 2, "high": 3}[self.value]


class TaskKind(str, Enum):
    """How a task came to exist on the board."""

    SIMPLE = "simple"
    OCCURRENCE = "occurrence"  # materialized from a RecurringTask, never stored
    APPOINTMENT = "appointment"


class DropPosition(str, Enum):
    """Vertical drop zone inside a column; maps onto a priority."""

    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"

    @property
    def priority(self) -> TaskPriority:
        return {
            "top": TaskPriority.HIGH,
            "middle": TaskPriority.MEDIUM,
            "bottom": TaskPriority.LOW,
        }[self.value]


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(WEEKDAY_TAGS[day.weekday()])

    @property
    def index(self) -> int:
        """Monday = 0 … Sunday = 6, like :meth:`date.weekday`."""
        return WEEKDAY_TAGS.index(self.value)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _generate_id(prefix: str) -> str:
    """Short human-friendly id: ``<prefix>-<8hex>``."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _new_task_id() -> str:
    return _generate_id("task")


def _new_block_id() -> str:
    return _generate_id("block")


def _new_recurring_id() -> str:
    return _generate_id("rec")


def _coerce_enum(enum_cls: type[Enum], raw: Any, default: Enum) -> Enum:
    if raw is None:
        return default
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw).strip().lower())
    except (ValueError, KeyError):
        return default


def parse_weekdays(values: Optional[Iterable[Any]]) -> list[Weekday]:
    """Coerce weekday tags, dropping unknown ones and duplicates.

    The result keeps Monday-first calendar order.
    """
    found: set[Weekday] = set()
    for raw in values or []:
        if isinstance(raw, Weekday):
            found.add(raw)
            continue
        tag = str(raw).strip().lower()
        if tag in WEEKDAY_TAGS:
            found.add(Weekday(tag))
    return sorted(found, key=lambda d: d.index)


def _dt_iso(value: datetime) -> str:
    return value.isoformat()


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A card on the board, owned by exactly one :class:`Block`."""

    id: str = field(default_factory=_new_task_id)
    title: str = ""
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    column: str = ENTRY_COLUMN_ID
    block_id: str = ""
    kind: TaskKind = TaskKind.SIMPLE
    created_at: datetime = field(default_factory=_now)
    start_date: date = field(default_factory=_today)
    due_date: Optional[date] = None
    recurring_days: list[Weekday] = field(default_factory=list)
    recurring_time: Optional[str] = None
    appointment_time: Optional[str] = None
    # Set on occurrences only: the RecurringTask they were expanded from.
    template_id: Optional[str] = None

    @property
    def is_occurrence(self) -> bool:
        return self.kind == TaskKind.OCCURRENCE

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match on title and description."""
        q = term.lower()
        return q in self.title.lower() or q in self.description.lower()

    @classmethod
    def validate_dict(cls, data: dict[str, Any]) -> list[str]:
        """Check the constraints a persisted or drafted task must satisfy.

        Returns a list of error strings (empty = valid).
        """
        errors: list[str] = []
        if not isinstance(data, dict):
            return ["Expected a dict"]
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append("'title' is required and must be non-empty")
        priority = data.get("priority")
        if priority is not None and str(priority) not in {e.value for e in TaskPriority}:
            errors.append(f"'priority' must be one of {[e.value for e in TaskPriority]}, got '{priority}'")
        kind = data.get("kind")
        if kind is not None and str(kind) not in {e.value for e in TaskKind}:
            errors.append(f"'kind' must be one of {[e.value for e in TaskKind]}, got '{kind}'")
        for date_field in ("start_date", "due_date"):
            raw = data.get(date_field)
            if raw not in (None, "") and _parse_date(raw) is None:
                errors.append(f"'{date_field}' must be a YYYY-MM-DD date, got '{raw}'")
        days = data.get("recurring_days")
        if days is not None and not isinstance(days, list):
            errors.append("'recurring_days' must be an array")
        return errors

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for YAML/JSON persistence."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "column": self.column,
            "block_id": self.block_id,
            "kind": self.kind.value,
            "created_at": _dt_iso(self.created_at),
            "start_date": _format_date(self.start_date),
            "due_date": _format_date(self.due_date),
            "recurring_days": [d.value for d in self.recurring_days],
            "recurring_time": self.recurring_time,
            "appointment_time": self.appointment_time,
            "template_id": self.template_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize from a plain dict, coercing enums and dates gracefully."""
        d = dict(data)
        created_at = _parse_iso(d.get("created_at")) or _now()
        return cls(
            id=str(d.get("id") or _new_task_id()),
            title=str(d.get("title") or ""),
            description=str(d.get("description") or ""),
            priority=_coerce_enum(TaskPriority, d.get("priority"), TaskPriority.MEDIUM),  # type: ignore[arg-type]
            column=str(d.get("column") or ENTRY_COLUMN_ID),
            block_id=str(d.get("block_id") or ""),
            kind=_coerce_enum(TaskKind, d.get("kind"), TaskKind.SIMPLE),  # type: ignore[arg-type]
            created_at=created_at,
            start_date=_parse_date(d.get("start_date")) or created_at.date(),
            due_date=_parse_date(d.get("due_date")),
            recurring_days=parse_weekdays(d.get("recurring_days")),
            recurring_time=_normalize_time_of_day(d.get("recurring_time")),
            appointment_time=_normalize_time_of_day(d.get("appointment_time")),
            template_id=d.get("template_id"),
        )


# ---------------------------------------------------------------------------
# RecurringTask
# ---------------------------------------------------------------------------

@dataclass
class RecurringTask:
    """Template expanded into one occurrence per matching weekday."""

    id: str = field(default_factory=_new_recurring_id)
    title: str = ""
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    block_id: str = ""
    created_at: datetime = field(default_factory=_now)
    start_date: date = field(default_factory=_today)
    due_date: Optional[date] = None  # None = unbounded
    recurring_days: list[Weekday] = field(default_factory=list)
    recurring_time: Optional[str] = None

    @property
    def weekday_set(self) -> frozenset[Weekday]:
        return frozenset(self.recurring_days)

    def is_valid(self) -> bool:
        if not self.title.strip() or not self.recurring_days:
            return False
        return self.due_date is None or self.due_date >= self.start_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "block_id": self.block_id,
            "created_at": _dt_iso(self.created_at),
            "start_date": _format_date(self.start_date),
            "due_date": _format_date(self.due_date),
            "recurring_days": [d.value for d in self.recurring_days],
            "recurring_time": self.recurring_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecurringTask":
        d = dict(data)
        created_at = _parse_iso(d.get("created_at")) or _now()
        return cls(
            id=str(d.get("id") or _new_recurring_id()),
            title=str(d.get("title") or ""),
            description=str(d.get("description") or ""),
            priority=_coerce_enum(TaskPriority, d.get("priority"), TaskPriority.MEDIUM),  # type: ignore[arg-type]
            block_id=str(d.get("block_id") or ""),
            created_at=created_at,
            start_date=_parse_date(d.get("start_date")) or created_at.date(),
            due_date=_parse_date(d.get("due_date")),
            recurring_days=parse_weekdays(d.get("recurring_days")),
            recurring_time=_normalize_time_of_day(d.get("recurring_time")),
        )


# ---------------------------------------------------------------------------
# Block
# ---------------------------------------------------------------------------

@dataclass
class ScheduleSlot:
    """One display label in a block's weekly schedule.

    ``recurring_task_id`` links slots pinned from a RecurringTask so that
    deleting the template removes exactly its own slots.
    """

    label: str
    recurring_task_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "recurring_task_id": self.recurring_task_id}

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["ScheduleSlot"]:
        # Older snapshots stored bare label strings.
        if isinstance(raw, str):
            return cls(label=raw) if raw.strip() else None
        if isinstance(raw, dict) and str(raw.get("label") or "").strip():
            return cls(label=str(raw["label"]), recurring_task_id=raw.get("recurring_task_id"))
        return None


@dataclass
class Block:
    """A named grouping of tasks ("project")."""

    id: str = field(default_factory=_new_block_id)
    name: str = ""
    color: str = ""
    expanded_by_column: dict[str, bool] = field(default_factory=dict)
    schedule: dict[Weekday, list[ScheduleSlot]] = field(default_factory=dict)
    tasks: list[Task] = field(default_factory=list)

    def is_expanded(self, column_id: str) -> bool:
        return self.expanded_by_column.get(column_id, True)

    def tasks_in(self, column_id: str) -> list[Task]:
        return [t for t in self.tasks if t.column == column_id]

    def index_of(self, task_id: str) -> Optional[int]:
        for i, t in enumerate(self.tasks):
            if t.id == task_id:
                return i
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "expanded_by_column": dict(self.expanded_by_column),
            "schedule": {
                day.value: [slot.to_dict() for slot in slots]
                for day, slots in sorted(self.schedule.items(), key=lambda kv: kv[0].index)
                if slots
            },
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Block":
        d = dict(data)
        block_id = str(d.get("id") or _new_block_id())
        schedule: dict[Weekday, list[ScheduleSlot]] = {}
        raw_schedule = d.get("schedule") or {}
        if isinstance(raw_schedule, dict):
            for tag, raw_slots in raw_schedule.items():
                days = parse_weekdays([tag])
                if not days or not isinstance(raw_slots, list):
                    continue
                slots: list[ScheduleSlot] = []
                for raw in raw_slots:
                    slot = ScheduleSlot.from_raw(raw)
                    if slot and all(s.label != slot.label for s in slots):
                        slots.append(slot)
                if slots:
                    schedule[days[0]] = slots
        tasks = []
        for raw_task in list(d.get("tasks") or []):
            if isinstance(raw_task, dict):
                task = Task.from_dict(raw_task)
                task.block_id = block_id
                tasks.append(task)
        return cls(
            id=block_id,
            name=str(d.get("name") or ""),
            color=str(d.get("color") or ""),
            expanded_by_column={str(k): bool(v) for k, v in dict(d.get("expanded_by_column") or {}).items()},
            schedule=schedule,
            tasks=tasks,
        )


# ---------------------------------------------------------------------------
# Column
# ---------------------------------------------------------------------------

@dataclass
class Column:
    """A workflow stage. Position lives in the registry's ordering."""

    id: str
    name: str
    fixed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "fixed": self.fixed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Column":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or data.get("id") or ""),
            fixed=bool(data.get("fixed", False)),
        )
