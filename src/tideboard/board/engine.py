"""Board store: high-level CRUD and board operations.

This is the primary entry-point for all board manipulation. It wraps a
:class:`BoardState` with business rules (validation, cascades, date
snapping, ordering) and notifies subscribers after each change has been
applied in memory.

Invalid input and unknown ids never raise here: the operation is skipped
and the method returns ``None`` / ``False`` / ``0``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Iterable, Optional

from ..config import get_columns_config, get_default_block_config
from ..constants import DEFAULT_BLOCK_COLOR, DEFAULT_BLOCK_NAME
from ..utils import _normalize_time_of_day, _parse_date, _today
from . import movement
from .columns import ColumnRegistry
from .model import (
    Block,
    Column,
    DropPosition,
    RecurringTask,
    Task,
    TaskKind,
    TaskPriority,
    Weekday,
    _coerce_enum,
    parse_weekdays,
)
from .ordering import rank_tasks, reorganize_done_at_top
from .state import BoardState

logger = logging.getLogger(__name__)

Listener = Callable[[str, dict[str, Any]], None]

_TASK_EDITABLE = {
    "title",
    "description",
    "priority",
    "column",
    "kind",
    "start_date",
    "due_date",
    "recurring_days",
    "recurring_time",
    "appointment_time",
}
_RECURRING_EDITABLE = {
    "title",
    "description",
    "priority",
    "block_id",
    "start_date",
    "due_date",
    "recurring_days",
    "recurring_time",
}


def _snap_dates(
    start: Optional[date],
    due: Optional[date],
    edited: str,
) -> tuple[Optional[date], Optional[date]]:
    """Resolve start > due by moving both dates to the one just edited."""
    if start is None or due is None or start <= due:
        return start, due
    pivot = start if edited == "start_date" else due
    return pivot, pivot


class BoardStore:
    """Own the board state and apply every mutation to it.

    Parameters
    ----------
    state:
        Existing state to wrap; a fresh board with the default columns
        otherwise.
    default_block_name, default_block_color:
        Catch-all block used by ingestion when no block can be resolved.
    """

    def __init__(
        self,
        state: Optional[BoardState] = None,
        *,
        default_block_name: str = DEFAULT_BLOCK_NAME,
        default_block_color: str = DEFAULT_BLOCK_COLOR,
    ) -> None:
        self.state = state or BoardState()
        self.default_block_name = (default_block_name or "").strip() or DEFAULT_BLOCK_NAME
        self.default_block_color = default_block_color or DEFAULT_BLOCK_COLOR
        self._listeners: list[Listener] = []

    @classmethod
    def from_config(cls, config: dict[str, Any], state: Optional[BoardState] = None) -> "BoardStore":
        block_cfg = get_default_block_config(config)
        if state is None:
            columns = ColumnRegistry(
                Column(id=cid, name=name, fixed=fixed) for cid, name, fixed in get_columns_config(config)
            )
            state = BoardState(columns=columns)
        return cls(state, default_block_name=block_cfg["name"], default_block_color=block_cfg["color"])

    @classmethod
    def from_snapshot(cls, data: Optional[dict[str, Any]], **kwargs: Any) -> "BoardStore":
        return cls(BoardState.from_snapshot(data), **kwargs)

    def to_snapshot(self) -> dict[str, Any]:
        return self.state.to_snapshot()

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit_event(self, event_type: str, **details: Any) -> None:
        logger.debug("board event %s %s", event_type, details)
        for listener in list(self._listeners):
            try:
                listener(event_type, details)
            except Exception:
                logger.exception("Board listener failed on %s", event_type)

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    @property
    def columns(self) -> ColumnRegistry:
        return self.state.columns

    def add_column(self, name: str) -> Optional[Column]:
        col = self.columns.add_column(name)
        if col is not None:
            self._emit_event("column.added", column_id=col.id)
        return col

    def rename_column(self, column_id: str, new_name: str) -> Optional[Column]:
        col = self.columns.rename_column(column_id, new_name, self.state.all_tasks())
        if col is not None:
            self._emit_event("column.renamed", column_id=col.id, name=col.name)
        return col

    def reorder_columns(self, sequence: Iterable[str]) -> bool:
        ok = self.columns.reorder_columns(list(sequence))
        if ok:
            self._emit_event("column.reordered", order=self.columns.ids())
        return ok

    def move_column(self, dragged_id: str, target_id: str) -> bool:
        ok = self.columns.move_column(dragged_id, target_id)
        if ok:
            self._emit_event("column.reordered", order=self.columns.ids())
        return ok

    def remove_column(self, column_id: str) -> Optional[Column]:
        col = self.columns.remove_column(column_id, self.state.all_tasks())
        if col is None:
            return None
        for block in self.state.blocks:
            block.expanded_by_column.pop(col.id, None)
        self._emit_event("column.removed", column_id=col.id)
        return col

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def create_block(self, name: str, color: Optional[str] = None) -> Optional[Block]:
        block = self.state.blocks.create_block(
            name,
            color or self.default_block_color,
            self.columns.ids(),
        )
        if block is not None:
            self._emit_event("block.created", block_id=block.id)
        return block

    def get_block(self, block_id: str) -> Optional[Block]:
        return self.state.blocks.get(block_id)

    def find_block(self, name: Optional[str]) -> Optional[Block]:
        return self.state.blocks.find_by_name(name)

    def list_blocks(self) -> list[Block]:
        return list(self.state.blocks)

    def ensure_default_block(self) -> Block:
        """Return the catch-all block, creating it on first use."""
        block = self.state.blocks.find_by_name(self.default_block_name)
        if block is None:
            block = self.create_block(self.default_block_name, self.default_block_color)
            if block is None:
                raise ValueError(f"Cannot create default block {self.default_block_name!r}")
        return block

    def update_block(
        self,
        block_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Optional[Block]:
        block = self.state.blocks.update_block(block_id, name=name, color=color)
        if block is not None:
            self._emit_event("block.updated", block_id=block.id)
        return block

    def delete_block(self, block_id: str) -> bool:
        """Delete a block together with its tasks and recurring templates."""
        block = self.state.blocks.remove_block(block_id)
        if block is None:
            return False
        for template in [r for r in self.state.recurring_tasks.values() if r.block_id == block_id]:
            del self.state.recurring_tasks[template.id]
            self.state.blocks.purge_schedule(template.id)
        self._emit_event("block.deleted", block_id=block_id, task_count=len(block.tasks))
        return True

    def toggle_block_expansion(self, block_id: str, column_id: str) -> Optional[bool]:
        col = self.columns.resolve(column_id)
        if col is None:
            return None
        expanded = self.state.blocks.toggle_expansion(block_id, col.id)
        if expanded is not None:
            self._emit_event("block.expansion", block_id=block_id, column_id=col.id, expanded=expanded)
        return expanded

    def set_all_expanded(self, expanded: bool) -> None:
        self.state.blocks.set_all_expanded(expanded, self.columns.ids())
        self._emit_event("block.expansion", expanded=expanded)

    def add_schedule_slot(self, block_id: str, weekday: Weekday | str, label: str) -> bool:
        ok = self.state.blocks.add_schedule_slot(block_id, weekday, label)
        if ok:
            self._emit_event("block.schedule", block_id=block_id)
        return ok

    def remove_schedule_slot(self, block_id: str, weekday: Weekday | str, label: str) -> bool:
        ok = self.state.blocks.remove_schedule_slot(block_id, weekday, label)
        if ok:
            self._emit_event("block.schedule", block_id=block_id)
        return ok

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(
        self,
        title: str,
        block_id: str,
        *,
        description: str = "",
        priority: str | TaskPriority = TaskPriority.MEDIUM,
        column: Optional[str] = None,
        kind: str | TaskKind = TaskKind.SIMPLE,
        start_date: Optional[date | str] = None,
        due_date: Optional[date | str] = None,
        recurring_days: Optional[Iterable[Weekday | str]] = None,
        recurring_time: Optional[str] = None,
        appointment_time: Optional[str] = None,
    ) -> Optional[Task]:
        """Create a task at the bottom of *block_id*'s collection."""
        block = self.state.blocks.get(block_id)
        if block is None or not title or not title.strip():
            return None
        col = self.columns.resolve(column) if column else self.columns.get(self.columns.entry_id)
        if col is None:
            return None
        task_kind = _coerce_enum(TaskKind, kind, TaskKind.SIMPLE)
        if task_kind == TaskKind.OCCURRENCE:
            task_kind = TaskKind.SIMPLE
        start, due = _snap_dates(
            _parse_date(start_date) or _today(),
            _parse_date(due_date),
            "due_date",
        )
        task = Task(
            title=title.strip(),
            description=description or "",
            priority=_coerce_enum(TaskPriority, priority, TaskPriority.MEDIUM),  # type: ignore[arg-type]
            column=col.id,
            block_id=block.id,
            kind=task_kind,  # type: ignore[arg-type]
            start_date=start,  # type: ignore[arg-type]
            due_date=due,
            recurring_days=parse_weekdays(recurring_days),
            recurring_time=_normalize_time_of_day(recurring_time),
            appointment_time=_normalize_time_of_day(appointment_time),
        )
        block.tasks.append(task)
        if col.id == self.columns.terminal_id:
            block.tasks = reorganize_done_at_top(block.tasks, col.id)
        logger.info("Created task %s: %s", task.id, task.title)
        self._emit_event("task.created", task_id=task.id, block_id=block.id, column=task.column)
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.state.get_task(task_id)

    def update_task(self, task_id: str, changes: dict[str, Any]) -> Optional[Task]:
        """Apply partial updates. ``id``, ``created_at`` and ``block_id`` are immutable.

        An empty title rejects the whole update. A start/due pair that would
        invert is snapped to the edited date.
        """
        task = self.state.get_task(task_id)
        if task is None:
            return None
        if "title" in changes and (not isinstance(changes["title"], str) or not changes["title"].strip()):
            return None

        applied: list[str] = []
        for key, value in changes.items():
            if key not in _TASK_EDITABLE or key == "column":
                continue
            if key == "title":
                task.title = value.strip()
            elif key == "description":
                task.description = str(value or "")
            elif key == "priority":
                task.priority = _coerce_enum(TaskPriority, value, task.priority)  # type: ignore[assignment]
            elif key == "kind":
                kind = _coerce_enum(TaskKind, value, task.kind)
                if kind != TaskKind.OCCURRENCE:
                    task.kind = kind  # type: ignore[assignment]
            elif key == "start_date":
                start = _parse_date(value)
                if start is None:
                    continue
                task.start_date, task.due_date = _snap_dates(start, task.due_date, key)  # type: ignore[assignment]
            elif key == "due_date":
                due = _parse_date(value)
                if value not in (None, "") and due is None:
                    continue
                task.start_date, task.due_date = _snap_dates(task.start_date, due, key)  # type: ignore[assignment]
            elif key == "recurring_days":
                task.recurring_days = parse_weekdays(value)
            elif key in ("recurring_time", "appointment_time"):
                setattr(task, key, _normalize_time_of_day(value))
            applied.append(key)

        if "column" in changes and changes["column"]:
            col = self.columns.resolve(str(changes["column"]))
            if col is not None and col.id != task.column:
                movement.move_to_column(self.state, task.id, col.id)
                applied.append("column")

        self._emit_event("task.updated", task_id=task.id, fields=sorted(applied))
        return task

    def delete_task(self, task_id: str) -> bool:
        found = self.state.locate(task_id)
        if found is None:
            return False
        block, task = found
        block.tasks = [t for t in block.tasks if t.id != task.id]
        self._emit_event("task.deleted", task_id=task_id, block_id=block.id)
        return True

    def delete_column_scoped(self, block_id: str, column_id: str) -> int:
        """Delete only *block_id*'s tasks tagged with *column_id*."""
        block = self.state.blocks.get(block_id)
        col = self.columns.resolve(column_id)
        if block is None or col is None:
            return 0
        before = len(block.tasks)
        block.tasks = [t for t in block.tasks if t.column != col.id]
        removed = before - len(block.tasks)
        if removed:
            self._emit_event("task.bulk_deleted", block_id=block_id, column_id=col.id, count=removed)
        return removed

    def move_task(
        self,
        task_id: str,
        target_column: str,
        position: Optional[DropPosition | str] = None,
    ) -> Optional[Task]:
        found = self.state.locate(task_id)
        before = (found[1].column, found[1].priority, found[0].index_of(task_id)) if found else None
        task = movement.move_to_column(self.state, task_id, target_column, position)
        if task is None:
            return None
        block = self.state.blocks.get(task.block_id)
        after = (task.column, task.priority, block.index_of(task.id) if block else None)
        if before != after:
            self._emit_event("task.moved", task_id=task.id, column=task.column, priority=task.priority.value)
        return task

    def mark_done(self, task_id: str) -> Optional[Task]:
        return self.move_task(task_id, self.columns.terminal_id)

    def reorder_task(self, task_id: str, target_column: str, target_index: int) -> Optional[Task]:
        task = movement.reorder_within_column(self.state, task_id, target_column, target_index)
        if task is not None:
            self._emit_event("task.reordered", task_id=task.id, column=task.column, index=target_index)
        return task

    def move_task_to_block(self, task_id: str, target_block_id: str) -> Optional[Task]:
        task = movement.move_across_blocks(self.state, task_id, target_block_id)
        if task is not None:
            self._emit_event("task.block_changed", task_id=task.id, block_id=task.block_id)
        return task

    # ------------------------------------------------------------------
    # Recurring templates
    # ------------------------------------------------------------------

    def create_recurring_task(
        self,
        title: str,
        block_id: str,
        recurring_days: Iterable[Weekday | str],
        *,
        description: str = "",
        priority: str | TaskPriority = TaskPriority.MEDIUM,
        start_date: Optional[date | str] = None,
        due_date: Optional[date | str] = None,
        recurring_time: Optional[str] = None,
    ) -> Optional[RecurringTask]:
        if self.state.blocks.get(block_id) is None or not title or not title.strip():
            return None
        days = parse_weekdays(recurring_days)
        if not days:
            return None
        start, due = _snap_dates(_parse_date(start_date) or _today(), _parse_date(due_date), "due_date")
        template = RecurringTask(
            title=title.strip(),
            description=description or "",
            priority=_coerce_enum(TaskPriority, priority, TaskPriority.MEDIUM),  # type: ignore[arg-type]
            block_id=block_id,
            start_date=start,  # type: ignore[arg-type]
            due_date=due,
            recurring_days=days,
            recurring_time=_normalize_time_of_day(recurring_time),
        )
        self.state.recurring_tasks[template.id] = template
        logger.info("Created recurring task %s: %s (%s)", template.id, template.title,
                    ",".join(d.value for d in days))
        self._emit_event("recurring.created", recurring_task_id=template.id)
        return template

    def get_recurring_task(self, template_id: str) -> Optional[RecurringTask]:
        return self.state.recurring_tasks.get(template_id)

    def list_recurring_tasks(self, block_id: Optional[str] = None) -> list[RecurringTask]:
        return [
            r for r in self.state.recurring_tasks.values()
            if block_id is None or r.block_id == block_id
        ]

    def update_recurring_task(self, template_id: str, changes: dict[str, Any]) -> Optional[RecurringTask]:
        template = self.state.recurring_tasks.get(template_id)
        if template is None:
            return None
        if "title" in changes and (not isinstance(changes["title"], str) or not changes["title"].strip()):
            return None
        if "recurring_days" in changes and not parse_weekdays(changes["recurring_days"]):
            return None
        if "block_id" in changes and self.state.blocks.get(str(changes["block_id"])) is None:
            return None

        applied: list[str] = []
        for key, value in changes.items():
            if key not in _RECURRING_EDITABLE:
                continue
            if key == "title":
                template.title = value.strip()
            elif key == "description":
                template.description = str(value or "")
            elif key == "priority":
                template.priority = _coerce_enum(TaskPriority, value, template.priority)  # type: ignore[assignment]
            elif key == "block_id":
                template.block_id = str(value)
            elif key == "start_date":
                start = _parse_date(value)
                if start is None:
                    continue
                template.start_date, template.due_date = _snap_dates(start, template.due_date, key)  # type: ignore[assignment]
            elif key == "due_date":
                due = _parse_date(value)
                if value not in (None, "") and due is None:
                    continue
                template.start_date, template.due_date = _snap_dates(template.start_date, due, key)  # type: ignore[assignment]
            elif key == "recurring_days":
                template.recurring_days = parse_weekdays(value)
            elif key == "recurring_time":
                template.recurring_time = _normalize_time_of_day(value)
            applied.append(key)

        self._emit_event("recurring.updated", recurring_task_id=template.id, fields=sorted(applied))
        return template

    def delete_recurring_task(self, template_id: str) -> bool:
        """Delete a template and the schedule slots pinned from it.

        Unlinked slots whose label equals the title are purged too, unless
        another template shares that title.
        """
        template = self.state.recurring_tasks.pop(template_id, None)
        if template is None:
            return False
        title_shared = any(r.title == template.title for r in self.state.recurring_tasks.values())
        removed = self.state.blocks.purge_schedule(
            template.id,
            legacy_label=None if title_shared else template.title,
        )
        self._emit_event("recurring.deleted", recurring_task_id=template_id, purged_slots=removed)
        return True

    def pin_recurring_to_schedule(self, template_id: str) -> int:
        """Add the template's title to its block's schedule on each recurring weekday."""
        template = self.state.recurring_tasks.get(template_id)
        if template is None:
            return 0
        added = 0
        for day in template.recurring_days:
            if self.state.blocks.add_schedule_slot(template.block_id, day, template.title, template.id):
                added += 1
        if added:
            self._emit_event("block.schedule", block_id=template.block_id, recurring_task_id=template.id)
        return added

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_tasks(
        self,
        *,
        block_id: Optional[str] = None,
        column: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Task]:
        """Filtered, ranked listing; recomputed on every call."""
        if block_id is not None:
            block = self.state.blocks.get(block_id)
            tasks = list(block.tasks) if block else []
        else:
            tasks = self.state.all_tasks()
        if column is not None:
            col = self.columns.resolve(column)
            if col is None:
                return []
            tasks = [t for t in tasks if t.column == col.id]
        return rank_tasks(tasks, self.columns.terminal_id, search)

    def search(self, term: str) -> list[Task]:
        return self.list_tasks(search=term) if term and term.strip() else []

    def board_view(self, search: Optional[str] = None) -> dict[str, dict[str, list[Task]]]:
        """Tasks grouped ``{column_id: {block_id: [tasks]}}`` in column order."""
        view: dict[str, dict[str, list[Task]]] = {}
        for col in self.columns.ordered():
            view[col.id] = {
                block.id: rank_tasks(block.tasks_in(col.id), self.columns.terminal_id, search)
                for block in self.state.blocks
            }
        return view
