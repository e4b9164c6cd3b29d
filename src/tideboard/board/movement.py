"""Movement engine: column moves, in-column reordering and block transfers.

Each function takes the :class:`BoardState` it mutates. Unknown task,
block or column references, and moves onto the current location, are
silent no-ops that return None.
"""

from __future__ import annotations

import logging
from typing import Optional

from .model import DropPosition, Task
from .ordering import reorganize_done_at_top
from .state import BoardState

logger = logging.getLogger(__name__)


def _coerce_position(position: Optional[DropPosition | str]) -> Optional[DropPosition]:
    if position is None or isinstance(position, DropPosition):
        return position
    try:
        return DropPosition(str(position).strip().lower())
    except ValueError:
        return None


def move_to_column(
    state: BoardState,
    task_id: str,
    target_column: str,
    position: Optional[DropPosition | str] = None,
) -> Optional[Task]:
    """Re-tag a task to *target_column*, deriving priority from the drop position.

    The task moves to the back of its block's collection. A move into the
    terminal column re-sorts the block so finished work sits on top.
    """
    found = state.locate(task_id)
    column = state.columns.resolve(target_column)
    if found is None or column is None:
        logger.debug("move_to_column ignored: task=%s column=%s", task_id, target_column)
        return None
    block, task = found
    drop = _coerce_position(position)
    if drop is None and task.column == column.id:
        return task

    task.column = column.id
    if drop is not None:
        task.priority = drop.priority
    block.tasks = [t for t in block.tasks if t.id != task.id] + [task]
    if column.id == state.columns.terminal_id:
        block.tasks = reorganize_done_at_top(block.tasks, column.id)
    return task


def mark_done(state: BoardState, task_id: str) -> Optional[Task]:
    return move_to_column(state, task_id, state.columns.terminal_id)


def reorder_within_column(
    state: BoardState,
    task_id: str,
    target_column: str,
    target_index: int,
) -> Optional[Task]:
    """Place a task so it becomes the *target_index*-th card of *target_column*.

    The index counts only tasks of the same block in that column and is
    clamped to the valid range. Priority is left unchanged.
    """
    found = state.locate(task_id)
    column = state.columns.resolve(target_column)
    if found is None or column is None:
        return None
    block, task = found

    rest = [t for t in block.tasks if t.id != task.id]
    peers = [i for i, t in enumerate(rest) if t.column == column.id]
    index = max(0, min(int(target_index), len(peers)))
    if index < len(peers):
        insert_at = peers[index]
    elif peers:
        insert_at = peers[-1] + 1
    else:
        insert_at = len(rest)

    task.column = column.id
    rest.insert(insert_at, task)
    block.tasks = rest
    if column.id == state.columns.terminal_id:
        block.tasks = reorganize_done_at_top(block.tasks, column.id)
    return task


def move_across_blocks(state: BoardState, task_id: str, target_block_id: str) -> Optional[Task]:
    """Hand a task to another block: finished tasks go on top, others at the bottom."""
    found = state.locate(task_id)
    target = state.blocks.get(target_block_id)
    if found is None or target is None:
        return None
    source, task = found
    if source.id == target.id:
        return None

    source.tasks = [t for t in source.tasks if t.id != task.id]
    task.block_id = target.id
    if state.is_terminal(task):
        target.tasks.insert(0, task)
    else:
        target.tasks.append(task)
    return task
