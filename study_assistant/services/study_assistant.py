"""Application facade over the ingestion, retrieval, and generation services.

Each public coroutine corresponds to one user-facing operation (upload,
question set, summary, search, document info, study plan).  Successful
calls return a typed response model; any pipeline failure is logged and
returned as an :class:`ErrorPayload` naming the stage that failed, so a
transport layer can serialise either outcome without inspecting exceptions.
"""

from __future__ import annotations

import math
from collections import Counter
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import structlog

from study_assistant.models.content import ContentType, IngestionResult, RetrievalResult
from study_assistant.models.generation import (
    DocumentInfo,
    ErrorPayload,
    ErrorStage,
    QuestionParams,
    QuestionSet,
    SearchResponse,
    StudyPlanParams,
    StudyPlanResult,
    SummaryParams,
    SummaryResult,
)
from study_assistant.services.generation_service import GenerationService
from study_assistant.services.ingestion.ingestion_service import IngestionService
from study_assistant.services.retriever import Retriever
from study_assistant.utils.errors import (
    ConfigurationError,
    EmbeddingError,
    ExtractionError,
    GenerationParseError,
    LLMError,
    StoreError,
    StudyAssistantError,
    TranscriptionError,
)

logger = structlog.get_logger(logger_name=__name__)

T = TypeVar("T")

WORDS_PER_MINUTE = 250
MIN_QUERY_LENGTH = 3
MAX_SEARCH_LIMIT = 50

_STAGE_BY_ERROR: tuple[tuple[type[StudyAssistantError], ErrorStage], ...] = (
    (ConfigurationError, ErrorStage.CONFIGURATION),
    (ExtractionError, ErrorStage.EXTRACTION),
    (TranscriptionError, ErrorStage.EXTRACTION),
    (EmbeddingError, ErrorStage.EMBEDDING),
    (StoreError, ErrorStage.STORAGE),
    (GenerationParseError, ErrorStage.GENERATION),
    (LLMError, ErrorStage.GENERATION),
)


def stage_for(exc: StudyAssistantError, default: ErrorStage) -> ErrorStage:
    """Map an error to the pipeline stage reported to callers."""
    for error_type, stage in _STAGE_BY_ERROR:
        if isinstance(exc, error_type):
            return stage
    return default


class StudyAssistant:
    """In-process entry point for every study-assistant operation.

    Built by :func:`study_assistant.main.build_study_assistant`; tests
    construct it directly with mocked services.
    """

    def __init__(
        self,
        ingestion: IngestionService,
        retriever: Retriever,
        generation: GenerationService,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._ingestion = ingestion
        self._retriever = retriever
        self._generation = generation
        self._http_client = http_client

    async def __aenter__(self) -> StudyAssistant:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the shared HTTP client, if this facade owns one."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def upload(
        self, file_path: str | Path, filename: str | None = None
    ) -> IngestionResult | ErrorPayload:
        """Ingest one file.  The extension of *filename* selects the extractor."""
        return await self._guard(
            "upload",
            ErrorStage.EXTRACTION,
            lambda: self._ingestion.ingest(file_path, filename=filename),
        )

    async def generate_questions(
        self,
        document_id: str,
        params: QuestionParams | None = None,
        topic: str | None = None,
        include_visual: bool = True,
    ) -> QuestionSet | ErrorPayload:
        """Generate a question set, optionally focused on *topic*.

        With a topic, context comes from a similarity search scoped to the
        document; without one, the whole document is used.
        """
        params = params or QuestionParams()

        async def _run() -> QuestionSet | ErrorPayload:
            if topic:
                content = await self._retriever.relevant_context(
                    document_id, topic, include_visual=include_visual
                )
            else:
                content = await self._retriever.all_document_content(
                    document_id, include_multimedia=include_visual
                )
            if not content:
                return _not_found(document_id, topic)
            questions = await self._generation.assemble_and_generate(content, params)
            return QuestionSet(
                document_id=document_id,
                questions=questions,
                params=params,
                topic=topic,
                context_sections=len(content),
            )

        return await self._guard("generate_questions", ErrorStage.GENERATION, _run)

    async def generate_summary(
        self,
        document_id: str,
        params: SummaryParams | None = None,
        include_multimedia: bool = True,
    ) -> SummaryResult | ErrorPayload:
        params = params or SummaryParams()

        async def _run() -> SummaryResult | ErrorPayload:
            content = await self._retriever.all_document_content(
                document_id, include_multimedia=include_multimedia
            )
            if not content:
                return _not_found(document_id)
            summary = await self._generation.assemble_and_generate(content, params)
            return SummaryResult(
                document_id=document_id,
                summary_type=params.summary_type,
                summary=summary,
                context_sections=len(content),
            )

        return await self._guard("generate_summary", ErrorStage.GENERATION, _run)

    async def generate_study_plan(
        self,
        document_id: str,
        params: StudyPlanParams | None = None,
    ) -> StudyPlanResult | ErrorPayload:
        params = params or StudyPlanParams()

        async def _run() -> StudyPlanResult | ErrorPayload:
            content = await self._retriever.all_document_content(document_id)
            if not content:
                return _not_found(document_id)
            plan = await self._generation.assemble_and_generate(content, params)
            return StudyPlanResult(document_id=document_id, params=params, plan=plan)

        return await self._guard("generate_study_plan", ErrorStage.GENERATION, _run)

    async def search_content(
        self,
        query: str,
        document_ids: list[str] | None = None,
        content_types: list[ContentType] | None = None,
        limit: int = 10,
    ) -> SearchResponse | ErrorPayload:
        """Similarity search across all stored documents."""
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return ErrorPayload(
                stage=ErrorStage.RETRIEVAL,
                message=f"Search query must be at least {MIN_QUERY_LENGTH} characters",
            )
        limit = max(1, min(limit, MAX_SEARCH_LIMIT))

        async def _run() -> SearchResponse:
            results = await self._retriever.search(
                query,
                document_ids=document_ids,
                content_types=content_types,
                limit=limit,
            )
            return SearchResponse(query=query, results=results)

        return await self._guard("search_content", ErrorStage.RETRIEVAL, _run)

    async def document_info(self, document_id: str) -> DocumentInfo | ErrorPayload:
        """Structure and reading-time estimate for one stored document."""

        async def _run() -> DocumentInfo | ErrorPayload:
            content = await self._retriever.all_document_content(document_id)
            if not content:
                return _not_found(document_id)
            return summarize_document(document_id, content)

        return await self._guard("document_info", ErrorStage.RETRIEVAL, _run)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _guard(
        self,
        operation: str,
        default_stage: ErrorStage,
        call: Callable[[], Awaitable[T]],
    ) -> T | ErrorPayload:
        try:
            return await call()
        except StudyAssistantError as exc:
            stage = stage_for(exc, default_stage)
            logger.warning(
                "operation_failed",
                operation=operation,
                stage=stage.value,
                error=str(exc),
                provider=exc.provider_name,
            )
            return ErrorPayload(stage=stage, message=exc.message)


def summarize_document(document_id: str, content: list[RetrievalResult]) -> DocumentInfo:
    """Aggregate per-chunk metadata into a :class:`DocumentInfo`."""
    breakdown = Counter(item.content_type or "unknown" for item in content)
    word_count = sum(len(item.content.split()) for item in content)
    first: dict[str, Any] = content[0].metadata
    return DocumentInfo(
        document_id=document_id,
        filename=str(first.get("filename", "")),
        media_kind=str(first.get("media_kind", "")),
        upload_time=str(first.get("upload_time", "")),
        total_sections=len(content),
        content_breakdown=dict(breakdown),
        word_count=word_count,
        estimated_reading_minutes=math.ceil(word_count / WORDS_PER_MINUTE),
        has_visual_content=breakdown.get(ContentType.IMAGE_DESCRIPTION.value, 0) > 0,
        has_transcript=breakdown.get(ContentType.TRANSCRIPT.value, 0) > 0,
        degraded_sections=sum(1 for item in content if item.metadata.get("degraded")),
    )


def _not_found(document_id: str, topic: str | None = None) -> ErrorPayload:
    suffix = f" for topic {topic!r}" if topic else ""
    logger.info("document_content_missing", document_id=document_id, topic=topic)
    return ErrorPayload(
        stage=ErrorStage.RETRIEVAL,
        message=f"No stored content found for document {document_id}{suffix}",
    )
