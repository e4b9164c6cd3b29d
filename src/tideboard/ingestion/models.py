"""Pydantic models for the natural-language ingestion contract."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..utils import _normalize_time_of_day, _parse_date

DraftKind = Literal["simple", "appointment", "recurring"]

_KIND_ALIASES = {
    "general": "simple",
    "geral": "simple",
    "compromisso": "appointment",
    "recorrente": "recurring",
    "task": "simple",
    "one-off": "simple",
    "event": "appointment",
    "meeting": "appointment",
    "recurrent": "recurring",
    "repeating": "recurring",
}


class IngestionRequest(BaseModel):
    """What the ingestion service is asked to interpret."""

    model_config = ConfigDict(populate_by_name=True)

    free_text_input: str = Field(..., min_length=1, alias="freeTextInput")
    reference_date: date = Field(..., alias="referenceDate")


class DraftTask(BaseModel):
    """One task proposed by the ingestion service."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    description: str = ""
    priority: Literal["low", "medium", "high"] = "low"
    initial_column: str = Field(
        "backlog",
        validation_alias=AliasChoices("initial_column", "initialColumn", "status"),
    )
    kind: DraftKind = Field("simple", validation_alias=AliasChoices("kind", "taskType"))
    due_date: Optional[date] = Field(None, alias="dueDate")
    start_date: Optional[date] = Field(None, alias="startDate")
    recurring_days: list[str] = Field(default_factory=list, alias="recurringDays")
    recurring_time: Optional[str] = Field(None, alias="recurringTime")
    appointment_time: Optional[str] = Field(None, alias="appointmentTime")
    suggested_block_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("suggested_block_name", "suggestedBlockName", "blockType"),
    )

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("priority", "kind", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return _KIND_ALIASES.get(value, value)
        return value

    @field_validator("initial_column", mode="before")
    @classmethod
    def _default_column(cls, value: Any) -> Any:
        return "backlog" if value in (None, "") else value

    @field_validator("due_date", "start_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        parsed = _parse_date(value)
        return parsed if parsed is not None else value

    @field_validator("recurring_days", mode="before")
    @classmethod
    def _coerce_days(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("recurring_time", "appointment_time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        return _normalize_time_of_day(value)


class RejectedDraft(BaseModel):
    index: int
    reason: str
    raw: Any = None


class IngestionResponse(BaseModel):
    """Drafts returned by the service, plus the ones that failed validation."""

    model_config = ConfigDict(populate_by_name=True)

    tasks: list[DraftTask] = Field(default_factory=list)
    suggested_block: Optional[str] = Field(None, alias="suggestedBlock")
    rejected: list[RejectedDraft] = Field(default_factory=list)
