"""Block registry: named task groupings with expansion state and a weekly schedule."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Optional

from .model import Block, ScheduleSlot, Task, Weekday, parse_weekdays

logger = logging.getLogger(__name__)


class BlockRegistry:
    """Ordered set of :class:`Block` objects keyed by id."""

    def __init__(self, blocks: Optional[Iterable[Block]] = None) -> None:
        self._blocks: dict[str, Block] = {}
        for block in blocks or []:
            if block.id not in self._blocks:
                self._blocks[block.id] = block

    # -- lookups ------------------------------------------------------------

    def __iter__(self) -> Iterator[Block]:
        return iter(list(self._blocks.values()))

    def __len__(self) -> int:
        return len(self._blocks)

    def get(self, block_id: str) -> Optional[Block]:
        return self._blocks.get(block_id)

    def find_by_name(self, name: Optional[str]) -> Optional[Block]:
        if not name or not name.strip():
            return None
        wanted = name.strip().lower()
        for block in self._blocks.values():
            if block.name.strip().lower() == wanted:
                return block
        return None

    def find_task(self, task_id: str) -> Optional[tuple[Block, Task]]:
        for block in self._blocks.values():
            for task in block.tasks:
                if task.id == task_id:
                    return block, task
        return None

    def all_tasks(self) -> list[Task]:
        return [t for block in self._blocks.values() for t in block.tasks]

    # -- block CRUD ---------------------------------------------------------

    def create_block(
        self,
        name: str,
        color: str = "",
        column_ids: Iterable[str] = (),
        block_id: Optional[str] = None,
    ) -> Optional[Block]:
        if not name or not name.strip():
            return None
        if self.find_by_name(name) is not None:
            logger.debug("Block named %r already exists; ignoring create", name)
            return None
        block = Block(name=name.strip(), color=color, expanded_by_column={cid: True for cid in column_ids})
        if block_id:
            if block_id in self._blocks:
                return None
            block.id = block_id
        self._blocks[block.id] = block
        logger.info("Created block %s: %s", block.id, block.name)
        return block

    def update_block(
        self,
        block_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Optional[Block]:
        block = self._blocks.get(block_id)
        if block is None:
            return None
        if name is not None:
            if not name.strip():
                return None
            clash = self.find_by_name(name)
            if clash is not None and clash.id != block_id:
                return None
            block.name = name.strip()
        if color is not None:
            block.color = color
        return block

    def remove_block(self, block_id: str) -> Optional[Block]:
        block = self._blocks.pop(block_id, None)
        if block is not None:
            logger.info("Removed block %s with %d task(s)", block_id, len(block.tasks))
        return block

    # -- expansion state ----------------------------------------------------

    def toggle_expansion(self, block_id: str, column_id: str) -> Optional[bool]:
        block = self._blocks.get(block_id)
        if block is None:
            return None
        block.expanded_by_column[column_id] = not block.is_expanded(column_id)
        return block.expanded_by_column[column_id]

    def set_all_expanded(self, expanded: bool, column_ids: Iterable[str]) -> None:
        ids = list(column_ids)
        for block in self._blocks.values():
            block.expanded_by_column = {cid: expanded for cid in ids}

    # -- weekly schedule ----------------------------------------------------

    def add_schedule_slot(
        self,
        block_id: str,
        weekday: Weekday | str,
        label: str,
        recurring_task_id: Optional[str] = None,
    ) -> bool:
        """Append *label* to the block's list for *weekday*; duplicates are dropped."""
        block = self._blocks.get(block_id)
        days = parse_weekdays([weekday])
        if block is None or not days or not label or not label.strip():
            return False
        slots = block.schedule.setdefault(days[0], [])
        if any(s.label == label.strip() for s in slots):
            return False
        slots.append(ScheduleSlot(label=label.strip(), recurring_task_id=recurring_task_id))
        return True

    def remove_schedule_slot(self, block_id: str, weekday: Weekday | str, label: str) -> bool:
        block = self._blocks.get(block_id)
        days = parse_weekdays([weekday])
        if block is None or not days:
            return False
        slots = block.schedule.get(days[0], [])
        kept = [s for s in slots if s.label != label]
        if len(kept) == len(slots):
            return False
        self._set_slots(block, days[0], kept)
        return True

    def purge_schedule(self, recurring_task_id: str, legacy_label: Optional[str] = None) -> int:
        """Drop slots pinned from *recurring_task_id* across every block and weekday.

        Slots without a template id whose label equals *legacy_label* are
        dropped as well; pass None to leave them alone.
        """
        removed = 0
        for block in self._blocks.values():
            for day in list(block.schedule):
                slots = block.schedule[day]
                kept = [
                    s for s in slots
                    if s.recurring_task_id != recurring_task_id
                    and not (s.recurring_task_id is None and legacy_label is not None and s.label == legacy_label)
                ]
                removed += len(slots) - len(kept)
                self._set_slots(block, day, kept)
        return removed

    @staticmethod
    def _set_slots(block: Block, day: Weekday, slots: list[ScheduleSlot]) -> None:
        if slots:
            block.schedule[day] = slots
        else:
            block.schedule.pop(day, None)

    # -- serialization ------------------------------------------------------

    def to_list(self) -> list[dict[str, Any]]:
        return [b.to_dict() for b in self._blocks.values()]

    @classmethod
    def from_list(cls, data: Optional[Iterable[Any]]) -> "BlockRegistry":
        return cls(Block.from_dict(d) for d in data or [] if isinstance(d, dict))
