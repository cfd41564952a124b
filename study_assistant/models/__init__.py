"""Study-assistant domain models — re-exports all public model classes.

The models are organized across three submodules:
    - document.py   — uploads, media kinds, and extractor output
    - content.py    — chunks, vector records, retrieval results
    - generation.py — task parameters and facade responses
"""

from __future__ import annotations

from study_assistant.models.content import (
    ANALYSIS_FAILED,
    MULTIMEDIA_CONTENT_TYPES,
    TRANSCRIPTION_FAILED,
    ContentChunk,
    ContentType,
    IngestionResult,
    RetrievalResult,
    VectorRecord,
    is_degraded,
    make_record_id,
)
from study_assistant.models.document import (
    SUPPORTED_EXTENSIONS,
    AudioAsset,
    ContentUnit,
    DocumentAsset,
    ExtractionResult,
    ImageAsset,
    MediaKind,
    TextBlock,
    new_document_id,
)
from study_assistant.models.generation import (
    Difficulty,
    DocumentInfo,
    ErrorPayload,
    ErrorStage,
    QuestionParams,
    QuestionSet,
    QuestionType,
    SearchResponse,
    StudyLevel,
    StudyPlanParams,
    StudyPlanResult,
    SummaryParams,
    SummaryResult,
    SummaryType,
)

__all__ = [
    "ANALYSIS_FAILED",
    "MULTIMEDIA_CONTENT_TYPES",
    "SUPPORTED_EXTENSIONS",
    "TRANSCRIPTION_FAILED",
    "AudioAsset",
    "ContentChunk",
    "ContentType",
    "ContentUnit",
    "Difficulty",
    "DocumentAsset",
    "DocumentInfo",
    "ErrorPayload",
    "ErrorStage",
    "ExtractionResult",
    "ImageAsset",
    "IngestionResult",
    "MediaKind",
    "QuestionParams",
    "QuestionSet",
    "QuestionType",
    "RetrievalResult",
    "SearchResponse",
    "StudyLevel",
    "StudyPlanParams",
    "StudyPlanResult",
    "SummaryParams",
    "SummaryResult",
    "SummaryType",
    "TextBlock",
    "VectorRecord",
    "is_degraded",
    "make_record_id",
    "new_document_id",
]
