"""Route ingestion drafts into a :class:`BoardStore`."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from loguru import logger

from ..board.engine import BoardStore
from ..board.model import Block, RecurringTask, Task, Weekday, parse_weekdays
from ..board.recurrence import next_matching_weekday
from ..config import get_ingestion_config
from .models import DraftTask, IngestionRequest, IngestionResponse
from .service import TaskIngestionService


@dataclass
class IngestionResult:
    created_tasks: list[Task] = field(default_factory=list)
    created_recurring: list[RecurringTask] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created_tasks) + len(self.created_recurring)


def _resolve_block(
    store: BoardStore,
    draft: DraftTask,
    suggested: Optional[Block],
) -> Block:
    if draft.suggested_block_name and draft.suggested_block_name.strip():
        named = store.find_block(draft.suggested_block_name.strip())
        if named is not None:
            return named
    if suggested is not None:
        return suggested
    return store.ensure_default_block()


def _resolve_suggested_block(
    store: BoardStore,
    name: Optional[str],
    create: bool,
) -> Optional[Block]:
    if not name or not name.strip():
        return None
    block = store.find_block(name.strip())
    if block is None and create:
        block = store.create_block(name.strip())
        if block is not None:
            logger.info("Created suggested block {!r}", block.name)
    return block


def _route_recurring(
    store: BoardStore,
    draft: DraftTask,
    block: Block,
    reference_date: date,
    result: IngestionResult,
) -> None:
    start = draft.start_date or reference_date
    days = parse_weekdays(draft.recurring_days)
    if not days and draft.start_date is not None:
        days = [Weekday.of(draft.start_date)]
    if not days:
        result.skipped.append((draft.title, "recurring draft without weekdays"))
        return
    template = store.create_recurring_task(
        draft.title,
        block.id,
        days,
        description=draft.description,
        priority=draft.priority,
        start_date=start,
        due_date=draft.due_date,
        recurring_time=draft.recurring_time,
    )
    if template is None:
        result.skipped.append((draft.title, "recurring task rejected"))
        return
    result.created_recurring.append(template)


def _route_task(
    store: BoardStore,
    draft: DraftTask,
    block: Block,
    reference_date: date,
    result: IngestionResult,
) -> None:
    column = store.columns.resolve(draft.initial_column)
    column_id = column.id if column is not None else store.columns.entry_id

    days = parse_weekdays(draft.recurring_days)
    if days and draft.start_date is None and draft.due_date is None:
        start = due = next_matching_weekday(reference_date, days)
    else:
        start, due = draft.start_date or reference_date, draft.due_date

    task = store.create_task(
        draft.title,
        block.id,
        description=draft.description,
        priority=draft.priority,
        column=column_id,
        kind=draft.kind,
        start_date=start,
        due_date=due,
        recurring_days=days,
        recurring_time=draft.recurring_time,
        appointment_time=draft.appointment_time,
    )
    if task is None:
        result.skipped.append((draft.title, "task rejected"))
        return
    result.created_tasks.append(task)


def route_ingestion(
    store: BoardStore,
    response: IngestionResponse,
    reference_date: date,
    *,
    create_suggested_blocks: bool = False,
) -> IngestionResult:
    """Create tasks and recurring templates for every draft in *response*.

    Each draft lands in the block it names, else the suggested block, else
    the default catch-all block (created on demand). Drafts that fail are
    recorded in ``skipped``; the rest are still routed.
    """
    result = IngestionResult()
    for rejected in response.rejected:
        result.skipped.append((f"draft #{rejected.index}", rejected.reason))

    suggested = _resolve_suggested_block(store, response.suggested_block, create_suggested_blocks)
    for draft in response.tasks:
        block = _resolve_block(store, draft, suggested)
        if draft.kind == "recurring":
            _route_recurring(store, draft, block, reference_date, result)
        else:
            _route_task(store, draft, block, reference_date, result)

    logger.info(
        "Ingestion routed {} task(s), {} recurring, {} skipped",
        len(result.created_tasks),
        len(result.created_recurring),
        len(result.skipped),
    )
    return result


async def ingest_text(
    service: TaskIngestionService,
    store: BoardStore,
    text: str,
    reference_date: date,
    *,
    create_suggested_blocks: Optional[bool] = None,
    config: Optional[dict[str, Any]] = None,
) -> IngestionResult:
    """Interpret *text* with *service* and route the drafts into *store*.

    Blank input is a no-op; :class:`IngestionError` from the service
    propagates. When *create_suggested_blocks* is not given it comes from
    the `ingestion` section of *config*.
    """
    if not text or not text.strip():
        return IngestionResult()
    request = IngestionRequest(free_text_input=text.strip(), reference_date=reference_date)
    response = await service.ingest(request)
    if create_suggested_blocks is None:
        create_suggested_blocks = get_ingestion_config(config or {})["create_suggested_blocks"]
    return route_ingestion(
        store,
        response,
        reference_date,
        create_suggested_blocks=create_suggested_blocks,
    )
