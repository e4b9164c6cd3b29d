"""Natural-language task ingestion."""

from .models import DraftTask, IngestionRequest, IngestionResponse, RejectedDraft
from .router import IngestionResult, ingest_text, route_ingestion
from .service import (
    IngestionError,
    PromptedIngestionService,
    TaskIngestionService,
    build_prompt,
    parse_ingestion_payload,
)

__all__ = [
    "DraftTask",
    "IngestionError",
    "IngestionRequest",
    "IngestionResponse",
    "IngestionResult",
    "PromptedIngestionService",
    "RejectedDraft",
    "TaskIngestionService",
    "build_prompt",
    "ingest_text",
    "parse_ingestion_payload",
    "route_ingestion",
]
