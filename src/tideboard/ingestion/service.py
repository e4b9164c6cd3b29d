"""Ingestion service boundary and tolerant payload parsing.

A :class:`TaskIngestionService` turns free text into an
:class:`IngestionResponse`. The bundled :class:`PromptedIngestionService`
does this by prompting a language model through an injected async
``complete`` callable; no network client ships with the package.
"""

from __future__ import annotations

import abc
import json
from typing import Any, Awaitable, Callable, Iterable, Optional

from loguru import logger
from pydantic import ValidationError

from .models import DraftTask, IngestionRequest, IngestionResponse, RejectedDraft


class IngestionError(RuntimeError):
    """The service reply could not be used at all."""


class TaskIngestionService(abc.ABC):
    """Abstract interpreter of natural-language task requests."""

    #: Human-readable name for this service.
    name: str = "base"

    @abc.abstractmethod
    async def ingest(self, request: IngestionRequest) -> IngestionResponse:
        """Interpret *request* and return the drafted tasks.

        Raises
        ------
        IngestionError
            When the reply cannot be interpreted as a whole.
        """
        ...


def _extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Pull the outermost JSON object out of *text*, tolerating code fences."""
    text = text.strip()
    if text.startswith("```"):
        inner_lines = []
        started = False
        for line in text.split("\n"):
            if not started:
                if line.strip().startswith("```"):
                    started = True
                    continue
            elif line.strip() == "```":
                break
            else:
                inner_lines.append(line)
        text = "\n".join(inner_lines).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg', 'invalid')}" if loc else str(err.get("msg", "invalid"))


def parse_ingestion_payload(payload: str | dict[str, Any]) -> IngestionResponse:
    """Validate a raw service reply draft by draft.

    Malformed drafts are reported in ``rejected`` instead of failing the
    whole reply. :class:`IngestionError` is raised only when no JSON object
    can be found or ``tasks`` is not a list.
    """
    if isinstance(payload, str):
        data = _extract_json_object(payload)
        if data is None:
            raise IngestionError("No JSON object found in ingestion reply")
    elif isinstance(payload, dict):
        data = payload
    else:
        raise IngestionError(f"Unsupported ingestion payload type: {type(payload).__name__}")

    raw_tasks = data.get("tasks", [])
    if raw_tasks is None:
        raw_tasks = []
    if not isinstance(raw_tasks, list):
        raise IngestionError("'tasks' must be a list")

    drafts: list[DraftTask] = []
    rejected: list[RejectedDraft] = []
    for index, raw in enumerate(raw_tasks):
        if not isinstance(raw, dict):
            rejected.append(RejectedDraft(index=index, reason="draft is not an object", raw=raw))
            continue
        try:
            drafts.append(DraftTask.model_validate(raw))
        except ValidationError as exc:
            reason = _first_error(exc)
            logger.warning("Rejected ingestion draft #{}: {}", index, reason)
            rejected.append(RejectedDraft(index=index, reason=reason, raw=raw))

    suggested = data.get("suggestedBlock", data.get("suggested_block"))
    if not isinstance(suggested, str) or not suggested.strip():
        suggested = None
    return IngestionResponse(tasks=drafts, suggested_block=suggested and suggested.strip(), rejected=rejected)


_PROMPT_TEMPLATE = """\
You are tide, a productivity assistant that turns requests into organized tasks.
Analyse the user's input and draft the matching tasks.

Today's date: {reference_date}
Existing blocks: {block_names}

User input: "{text}"

Columns:
- default to "backlog";
- an infinitive verb ("write the report") goes to "to-do";
- an ongoing action ("writing the report") goes to "in-progress";
- a finished action ("finished the report") goes to "done".

Priority is "low" unless the user asks otherwise ("urgent" -> "high",
"important" -> "medium"). The description stays empty unless given.

Kinds:
- a one-off task -> "simple";
- a one-off event with a date or time -> "appointment" (startDate, appointmentTime);
- something that repeats ("every Tuesday 12h") -> "recurring" (recurringDays,
  recurringTime, optional startDate and dueDate bounding the repetition).

Dates are YYYY-MM-DD resolved against today's date; times are HH:MM.
Only set suggestedBlock when the user explicitly asks for a new block; use
an existing block name in suggestedBlockName when the user names one.

Reply with JSON only:
{{
  "tasks": [
    {{
      "title": "string",
      "description": "string",
      "priority": "low|medium|high",
      "initialColumn": "backlog|to-do|in-progress|done",
      "kind": "simple|appointment|recurring",
      "dueDate": "YYYY-MM-DD",
      "startDate": "YYYY-MM-DD",
      "recurringDays": ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"],
      "recurringTime": "HH:MM",
      "appointmentTime": "HH:MM",
      "suggestedBlockName": "string"
    }}
  ],
  "suggestedBlock": "string"
}}
"""


def build_prompt(request: IngestionRequest, block_names: Iterable[str] = ()) -> str:
    names = ", ".join(block_names) or "(none)"
    return _PROMPT_TEMPLATE.format(
        reference_date=request.reference_date.isoformat(),
        block_names=names,
        text=request.free_text_input.replace('"', "'"),
    )


Completion = Callable[[str], Awaitable[str]]


class PromptedIngestionService(TaskIngestionService):
    """Ingest through a text-completion callable.

    Parameters
    ----------
    complete:
        ``async (prompt) -> reply`` wrapping whatever model client is in use.
    block_names:
        Names of existing blocks, offered to the model as routing targets.
    """

    name = "prompted"

    def __init__(self, complete: Completion, block_names: Iterable[str] = ()) -> None:
        self._complete = complete
        self.block_names = list(block_names)

    async def ingest(self, request: IngestionRequest) -> IngestionResponse:
        prompt = build_prompt(request, self.block_names)
        try:
            reply = await self._complete(prompt)
        except Exception as exc:
            raise IngestionError(f"Completion failed: {exc}") from exc
        if not reply or not reply.strip():
            raise IngestionError("Empty ingestion reply")
        logger.debug("Ingestion reply received ({} chars)", len(reply))
        return parse_ingestion_payload(reply)
