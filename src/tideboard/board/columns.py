"""Column registry: the ordered catalog of workflow stages.

Tasks reference columns by id. Older data tagged tasks with a column's
display name instead, so renames re-tag any task still carrying the old
name and :meth:`ColumnRegistry.resolve` accepts either form.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Sequence

from ..constants import DEFAULT_COLUMNS, ENTRY_COLUMN_ID, TERMINAL_COLUMN_ID
from .model import Column, Task

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_column_id(name: str) -> str:
    """``"QA Review"`` → ``"qa-review"``."""
    return _WHITESPACE_RE.sub("-", name.strip().lower())


class ColumnRegistry:
    """Catalog of :class:`Column` objects plus the active ordering."""

    def __init__(self, columns: Optional[Iterable[Column]] = None) -> None:
        self._catalog: dict[str, Column] = {}
        self._order: list[str] = []
        seed = list(columns) if columns is not None else [
            Column(id=cid, name=name, fixed=fixed) for cid, name, fixed in DEFAULT_COLUMNS
        ]
        for col in seed:
            if col.id and col.id not in self._catalog:
                self._catalog[col.id] = col
                self._order.append(col.id)
        self._ensure_fixed()

    def _ensure_fixed(self) -> None:
        defaults = {cid: (name, fixed) for cid, name, fixed in DEFAULT_COLUMNS}
        for cid in (ENTRY_COLUMN_ID, TERMINAL_COLUMN_ID):
            col = self._catalog.get(cid)
            if col is None:
                col = Column(id=cid, name=defaults[cid][0], fixed=True)
                self._catalog[cid] = col
                if cid == ENTRY_COLUMN_ID:
                    self._order.insert(0, cid)
                else:
                    self._order.append(cid)
            col.fixed = True

    # -- lookups ------------------------------------------------------------

    @property
    def entry_id(self) -> str:
        return ENTRY_COLUMN_ID

    @property
    def terminal_id(self) -> str:
        return TERMINAL_COLUMN_ID

    def ordered(self) -> list[Column]:
        return [self._catalog[cid] for cid in self._order]

    def ids(self) -> list[str]:
        return list(self._order)

    def get(self, column_id: str) -> Optional[Column]:
        return self._catalog.get(column_id)

    def __contains__(self, column_id: object) -> bool:
        return column_id in self._catalog

    def resolve(self, tag: Optional[str]) -> Optional[Column]:
        """Find a column by id, then by display name (case-insensitive)."""
        if not tag:
            return None
        col = self._catalog.get(tag)
        if col is not None:
            return col
        wanted = tag.strip().lower()
        for col in self._catalog.values():
            if col.name.lower() == wanted:
                return col
        return self._catalog.get(normalize_column_id(tag))

    def _name_taken(self, name: str, exclude: Optional[str] = None) -> bool:
        wanted = name.strip().lower()
        return any(c.name.lower() == wanted and c.id != exclude for c in self._catalog.values())

    def deletable(self) -> list[Column]:
        """Columns that may be offered for deletion (never the fixed ones)."""
        return [c for c in self.ordered() if not c.fixed]

    # -- mutations ----------------------------------------------------------

    def add_column(self, name: str) -> Optional[Column]:
        if not name or not name.strip():
            return None
        cid = normalize_column_id(name)
        if cid in self._catalog or self._name_taken(name):
            logger.debug("Column %s already exists; ignoring add", cid)
            return None
        col = Column(id=cid, name=name.strip(), fixed=False)
        self._catalog[cid] = col
        self._order.append(cid)
        logger.info("Added column %s (%s)", cid, col.name)
        return col

    def rename_column(
        self,
        column_id: str,
        new_name: str,
        tasks: Iterable[Task] = (),
    ) -> Optional[Column]:
        """Rename a column and re-tag tasks still carrying its old display name."""
        col = self._catalog.get(column_id)
        if col is None or not new_name or not new_name.strip():
            return None
        if self._name_taken(new_name, exclude=col.id):
            return None
        old_name = col.name
        col.name = new_name.strip()
        retagged = 0
        for task in tasks:
            if task.column != col.id and task.column.lower() == old_name.lower():
                task.column = col.id
                retagged += 1
        logger.info("Renamed column %s: %r -> %r (%d task(s) re-tagged)", col.id, old_name, col.name, retagged)
        return col

    def reorder_columns(self, sequence: Sequence[str]) -> bool:
        """Replace the active ordering with a permutation of the existing ids."""
        if len(sequence) != len(self._order) or set(sequence) != set(self._order):
            return False
        self._order = list(sequence)
        return True

    def move_column(self, dragged_id: str, target_id: str) -> bool:
        """Drag-style reorder: put *dragged_id* where *target_id* currently sits."""
        if dragged_id == target_id:
            return False
        if dragged_id not in self._order or target_id not in self._order:
            return False
        target_index = self._order.index(target_id)
        self._order.remove(dragged_id)
        self._order.insert(target_index, dragged_id)
        return True

    def remove_column(self, column_id: str, tasks: Iterable[Task] = ()) -> Optional[Column]:
        """Remove a non-fixed column; its tasks fall back to the entry column."""
        col = self._catalog.get(column_id)
        if col is None or col.fixed:
            return None
        del self._catalog[column_id]
        self._order.remove(column_id)
        for task in tasks:
            if task.column == column_id or task.column.lower() == col.name.lower():
                task.column = self.entry_id
        logger.info("Removed column %s", column_id)
        return col

    # -- serialization ------------------------------------------------------

    def to_list(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.ordered()]

    @classmethod
    def from_list(cls, data: Optional[Iterable[Any]]) -> "ColumnRegistry":
        if not data:
            return cls()
        return cls(Column.from_dict(d) for d in data if isinstance(d, dict))
