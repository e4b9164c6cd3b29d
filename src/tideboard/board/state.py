"""Explicit board state handle.

Every mutation function in :mod:`.movement` and every method of
:class:`~tideboard.board.engine.BoardStore` works through one
:class:`BoardState`; there is no module-level board.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..constants import SNAPSHOT_VERSION
from .blocks import BlockRegistry
from .columns import ColumnRegistry
from .model import Block, RecurringTask, Task


@dataclass
class BoardState:
    columns: ColumnRegistry = field(default_factory=ColumnRegistry)
    blocks: BlockRegistry = field(default_factory=BlockRegistry)
    recurring_tasks: dict[str, RecurringTask] = field(default_factory=dict)

    # -- lookups ------------------------------------------------------------

    def locate(self, task_id: str) -> Optional[tuple[Block, Task]]:
        return self.blocks.find_task(task_id)

    def get_task(self, task_id: str) -> Optional[Task]:
        found = self.blocks.find_task(task_id)
        return found[1] if found else None

    def all_tasks(self) -> list[Task]:
        return self.blocks.all_tasks()

    def is_terminal(self, task: Task) -> bool:
        return task.column == self.columns.terminal_id

    # -- snapshot -----------------------------------------------------------

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "columns": self.columns.to_list(),
            "blocks": self.blocks.to_list(),
            "recurring_tasks": [r.to_dict() for r in self.recurring_tasks.values()],
        }

    @classmethod
    def from_snapshot(cls, data: Optional[dict[str, Any]]) -> "BoardState":
        data = data or {}
        columns = ColumnRegistry.from_list(data.get("columns"))
        blocks = BlockRegistry.from_list(data.get("blocks"))
        recurring: dict[str, RecurringTask] = {}
        for raw in list(data.get("recurring_tasks") or []):
            if isinstance(raw, dict):
                template = RecurringTask.from_dict(raw)
                recurring[template.id] = template
        # Re-home tasks whose column no longer exists (or was stored by name).
        for task in blocks.all_tasks():
            col = columns.resolve(task.column)
            task.column = col.id if col is not None else columns.entry_id
        return cls(columns=columns, blocks=blocks, recurring_tasks=recurring)
