"""Tests for natural-language ingestion (ingestion/)."""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest
from pydantic import ValidationError

from tideboard.board.engine import BoardStore
from tideboard.board.model import TaskKind, TaskPriority, Weekday
from tideboard.board.recurrence import expand_for_range
from tideboard.ingestion import (
    DraftTask,
    IngestionError,
    IngestionRequest,
    IngestionResponse,
    PromptedIngestionService,
    TaskIngestionService,
    build_prompt,
    ingest_text,
    parse_ingestion_payload,
    route_ingestion,
)

# Wednesday
REFERENCE = date(2024, 8, 14)


class StaticIngestionService(TaskIngestionService):
    name = "static"

    def __init__(self, payload: dict[str, Any]) -> None:
        self.payload = payload
        self.requests: list[IngestionRequest] = []

    async def ingest(self, request: IngestionRequest) -> IngestionResponse:
        self.requests.append(request)
        return parse_ingestion_payload(self.payload)


@pytest.fixture
def store() -> BoardStore:
    return BoardStore()


# ---------------------------------------------------------------------------
# Models and parsing
# ---------------------------------------------------------------------------

class TestDraftTask:
    def test_defaults(self) -> None:
        draft = DraftTask(title="Study React")
        assert draft.priority == "low"
        assert draft.initial_column == "backlog"
        assert draft.kind == "simple"
        assert draft.description == ""
        assert draft.due_date is None

    def test_camel_case_aliases(self) -> None:
        draft = DraftTask.model_validate({
            "title": "Dentist",
            "priority": "HIGH",
            "initialColumn": "to-do",
            "kind": "appointment",
            "startDate": "2024-08-15",
            "appointmentTime": "15h",
            "suggestedBlockName": "Health",
        })
        assert draft.priority == "high"
        assert draft.initial_column == "to-do"
        assert draft.start_date == date(2024, 8, 15)
        assert draft.appointment_time is None  # "15h" has no minutes
        assert draft.suggested_block_name == "Health"

    def test_legacy_keys_and_kind_names(self) -> None:
        draft = DraftTask.model_validate({
            "title": "Exercise",
            "status": "in-progress",
            "taskType": "recorrente",
            "recurringDays": "tuesday",
            "recurringTime": "12:00",
            "blockType": "Personal",
        })
        assert draft.initial_column == "in-progress"
        assert draft.kind == "recurring"
        assert draft.recurring_days == ["tuesday"]
        assert draft.recurring_time == "12:00"
        assert draft.suggested_block_name == "Personal"

    def test_invalid(self) -> None:
        with pytest.raises(ValidationError):
            DraftTask(title="  ")
        with pytest.raises(ValidationError):
            DraftTask.model_validate({"title": "x", "dueDate": "next friday"})
        with pytest.raises(ValidationError):
            DraftTask.model_validate({"title": "x", "priority": "urgent"})


class TestParsePayload:
    def test_fenced_reply(self) -> None:
        reply = (
            "Sure! Here you go:\n"
            "```json\n"
            '{"tasks": [{"title": "Report", "initialColumn": "to-do", "dueDate": "2024-08-16"}],'
            ' "suggestedBlock": ""}\n'
            "```\n"
        )
        response = parse_ingestion_payload(reply)
        assert [d.title for d in response.tasks] == ["Report"]
        assert response.tasks[0].due_date == date(2024, 8, 16)
        assert response.suggested_block is None
        assert response.rejected == []

    def test_prose_around_json(self) -> None:
        response = parse_ingestion_payload('noise {"tasks": [], "suggestedBlock": " Marketing "} trailing')
        assert response.tasks == []
        assert response.suggested_block == "Marketing"

    def test_bad_drafts_are_reported(self) -> None:
        response = parse_ingestion_payload({
            "tasks": [{"title": "ok"}, {"title": ""}, "not a draft", {"title": "x", "priority": "p0"}],
        })
        assert [d.title for d in response.tasks] == ["ok"]
        assert [r.index for r in response.rejected] == [1, 2, 3]
        assert response.rejected[1].reason == "draft is not an object"

    def test_unusable_payloads(self) -> None:
        with pytest.raises(IngestionError, match="No JSON object"):
            parse_ingestion_payload("I could not understand that.")
        with pytest.raises(IngestionError, match="must be a list"):
            parse_ingestion_payload({"tasks": {"title": "x"}})
        with pytest.raises(IngestionError):
            parse_ingestion_payload(["tasks"])  # type: ignore[arg-type]

    def test_missing_tasks_key(self) -> None:
        assert parse_ingestion_payload({}).tasks == []


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

class TestRouteIngestion:
    def test_defaults_to_catch_all_block(self, store: BoardStore) -> None:
        response = parse_ingestion_payload({"tasks": [{"title": "Study React"}]})
        result = route_ingestion(store, response, REFERENCE)
        task = result.created_tasks[0]
        block = store.get_block(task.block_id)
        assert block.name == "Random"
        assert task.column == "backlog"
        assert task.priority == TaskPriority.LOW
        assert task.start_date == REFERENCE
        assert task.due_date is None

    def test_named_block_and_column(self, store: BoardStore) -> None:
        work = store.create_block("Work")
        response = parse_ingestion_payload({
            "tasks": [
                {"title": "Report", "initialColumn": "to do", "suggestedBlockName": "work"},
                {"title": "Review", "initialColumn": "done", "suggestedBlockName": "Work"},
                {"title": "Mystery", "initialColumn": "archive", "suggestedBlockName": "Work"},
            ],
        })
        result = route_ingestion(store, response, REFERENCE)
        assert [t.column for t in result.created_tasks] == ["to-do", "done", "backlog"]
        assert all(t.block_id == work.id for t in result.created_tasks)
        assert work.tasks[0].title == "Review"

    def test_suggested_block_only_created_when_enabled(self, store: BoardStore) -> None:
        payload = {"tasks": [{"title": "Campaign"}], "suggestedBlock": "Marketing"}
        route_ingestion(store, parse_ingestion_payload(payload), REFERENCE)
        assert store.find_block("Marketing") is None

        result = route_ingestion(
            store, parse_ingestion_payload(payload), REFERENCE, create_suggested_blocks=True
        )
        marketing = store.find_block("Marketing")
        assert marketing is not None
        assert result.created_tasks[0].block_id == marketing.id

    def test_existing_suggested_block_is_used(self, store: BoardStore) -> None:
        marketing = store.create_block("Marketing")
        payload = {"tasks": [{"title": "Campaign"}], "suggestedBlock": "marketing"}
        result = route_ingestion(store, parse_ingestion_payload(payload), REFERENCE)
        assert result.created_tasks[0].block_id == marketing.id

    def test_appointment(self, store: BoardStore) -> None:
        payload = {"tasks": [{
            "title": "Gastroenterologist",
            "kind": "appointment",
            "startDate": "2024-09-05",
            "appointmentTime": "14:20",
        }]}
        task = route_ingestion(store, parse_ingestion_payload(payload), REFERENCE).created_tasks[0]
        assert task.kind == TaskKind.APPOINTMENT
        assert task.start_date == date(2024, 9, 5)
        assert task.appointment_time == "14:20"

    def test_weekday_without_date_resolves_next_match(self, store: BoardStore) -> None:
        payload = {"tasks": [{"title": "Call mom", "recurringDays": ["friday"], "recurringTime": "18:00"}]}
        task = route_ingestion(store, parse_ingestion_payload(payload), REFERENCE).created_tasks[0]
        assert task.start_date == task.due_date == date(2024, 8, 16)
        assert task.recurring_days == [Weekday.FRIDAY]

    def test_recurring_becomes_template(self, store: BoardStore) -> None:
        payload = {"tasks": [{
            "title": "Evaluate the school",
            "kind": "recurring",
            "recurringDays": ["wednesday"],
            "recurringTime": "14:00",
            "startDate": "2024-08-13",
            "dueDate": "2024-09-17",
        }]}
        result = route_ingestion(store, parse_ingestion_payload(payload), REFERENCE)
        assert result.created_tasks == []
        template = result.created_recurring[0]
        assert template.recurring_days == [Weekday.WEDNESDAY]
        assert template.due_date == date(2024, 9, 17)
        assert store.list_tasks() == []

    def test_recurring_without_start_uses_reference_date(self, store: BoardStore) -> None:
        payload = {"tasks": [{
            "title": "Evaluate the school",
            "kind": "recurring",
            "recurringDays": ["wednesday"],
            "dueDate": "2024-09-17",
        }]}
        result = route_ingestion(store, parse_ingestion_payload(payload), date(2024, 8, 13))
        template = result.created_recurring[0]
        assert template.start_date == date(2024, 8, 13)
        dates = [o.start_date for o in expand_for_range(template, date(2024, 8, 1), date(2024, 10, 1))]
        assert dates == [
            date(2024, 8, 14),
            date(2024, 8, 21),
            date(2024, 8, 28),
            date(2024, 9, 4),
            date(2024, 9, 11),
        ]

    def test_recurring_day_derived_from_start(self, store: BoardStore) -> None:
        payload = {"tasks": [{"title": "Piano", "kind": "recurring", "startDate": "2024-08-15"}]}
        result = route_ingestion(store, parse_ingestion_payload(payload), REFERENCE)
        assert result.created_recurring[0].recurring_days == [Weekday.THURSDAY]

    def test_skips_are_collected(self, store: BoardStore) -> None:
        payload = {"tasks": [
            {"title": "No days", "kind": "recurring"},
            {"title": "Fine"},
            {"title": ""},
        ]}
        result = route_ingestion(store, parse_ingestion_payload(payload), REFERENCE)
        assert [t.title for t in result.created_tasks] == ["Fine"]
        assert len(result.skipped) == 2
        assert result.created_count == 1


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest.mark.anyio
class TestIngestText:
    async def test_end_to_end(self, store: BoardStore) -> None:
        service = StaticIngestionService({"tasks": [{"title": "Report", "initialColumn": "to-do"}]})
        result = await ingest_text(service, store, "  write the report  ", REFERENCE)
        assert service.requests[0].free_text_input == "write the report"
        assert service.requests[0].reference_date == REFERENCE
        assert [t.title for t in store.list_tasks(column="to-do")] == ["Report"]
        assert result.created_count == 1

    async def test_blank_text_is_noop(self, store: BoardStore) -> None:
        service = StaticIngestionService({"tasks": [{"title": "Report"}]})
        result = await ingest_text(service, store, "   ", REFERENCE)
        assert result.created_count == 0
        assert service.requests == []

    async def test_config_enables_suggested_blocks(self, store: BoardStore) -> None:
        service = StaticIngestionService({"tasks": [{"title": "Ad"}], "suggestedBlock": "Marketing"})
        await ingest_text(
            service, store, "create Marketing", REFERENCE,
            config={"ingestion": {"create_suggested_blocks": True}},
        )
        assert store.find_block("Marketing") is not None

    async def test_prompted_service(self, store: BoardStore) -> None:
        prompts: list[str] = []

        async def complete(prompt: str) -> str:
            prompts.append(prompt)
            return '```json\n{"tasks": [{"title": "Dentist", "kind": "appointment", "startDate": "2024-08-15"}]}\n```'

        service = PromptedIngestionService(complete, block_names=["Work"])
        result = await ingest_text(service, store, "dentist tomorrow 3pm", REFERENCE)
        assert "2024-08-14" in prompts[0]
        assert "Work" in prompts[0]
        assert result.created_tasks[0].start_date == date(2024, 8, 15)

    async def test_prompted_service_failures(self, store: BoardStore) -> None:
        async def broken(prompt: str) -> str:
            raise ConnectionError("offline")

        async def empty(prompt: str) -> str:
            return "  "

        with pytest.raises(IngestionError, match="offline"):
            await ingest_text(PromptedIngestionService(broken), store, "x", REFERENCE)
        with pytest.raises(IngestionError, match="Empty"):
            await ingest_text(PromptedIngestionService(empty), store, "x", REFERENCE)
        assert store.list_blocks() == []


class TestBuildPrompt:
    def test_mentions_inputs(self) -> None:
        request = IngestionRequest(free_text_input='finish "report"', reference_date=REFERENCE)
        prompt = build_prompt(request)
        assert "2024-08-14" in prompt
        assert "finish 'report'" in prompt
        assert "(none)" in prompt
        assert '"tasks"' in prompt
