"""Composition root: builds every provider and service from :class:`Settings`.

Only the ``build_*`` factories in this module read settings; everything
downstream receives plain constructor arguments.  The CLI and any future
transport layer call :func:`build_study_assistant` once and reuse the facade.
"""

from __future__ import annotations

import httpx
import structlog

from study_assistant.config.settings import Settings
from study_assistant.interfaces.embedding_provider import IEmbeddingProvider
from study_assistant.interfaces.llm_provider import ILLMProvider
from study_assistant.interfaces.transcription_provider import ITranscriptionProvider
from study_assistant.providers.embedding.local_service_embedding_provider import (
    LocalServiceEmbeddingProvider,
)
from study_assistant.providers.embedding.ollama_embedding_provider import (
    OllamaEmbeddingProvider,
)
from study_assistant.providers.embedding.openai_embedding_provider import (
    OpenAIEmbeddingProvider,
)
from study_assistant.providers.llm.anthropic_provider import AnthropicLLMProvider
from study_assistant.providers.llm.ollama_provider import OllamaLLMProvider
from study_assistant.providers.llm.openai_provider import OpenAILLMProvider
from study_assistant.providers.transcription.whisper_api_provider import WhisperAPIProvider
from study_assistant.providers.transcription.whisper_local_provider import (
    WhisperLocalProvider,
)
from study_assistant.providers.vector_store.chroma_http_provider import ChromaHTTPProvider
from study_assistant.services.generation_service import GenerationService
from study_assistant.services.ingestion.chunker import TextChunker
from study_assistant.services.ingestion.content_combiner import ContentCombiner
from study_assistant.services.ingestion.extractors import ExtractorRegistry
from study_assistant.services.ingestion.ingestion_service import IngestionService
from study_assistant.services.retriever import Retriever
from study_assistant.services.study_assistant import StudyAssistant
from study_assistant.services.transcriber import Transcriber
from study_assistant.services.visual_analyzer import VisualAnalyzer
from study_assistant.utils.errors import ConfigurationError
from study_assistant.utils.retry import BackoffPolicy

logger = structlog.get_logger(logger_name=__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(settings: Settings) -> ILLMProvider:
    """Select the LLM provider named by ``settings.llm_provider``.

    ``auto`` picks the first configured provider in priority order:
    Anthropic -> OpenAI -> Ollama (no credentials needed).  An explicit
    choice without its credentials is a configuration error.
    """
    choice = settings.llm_provider
    if choice == "auto":
        if settings.anthropic_api_key:
            return AnthropicLLMProvider(settings=settings)
        if settings.openai_api_key:
            return OpenAILLMProvider(settings=settings)
        return OllamaLLMProvider(settings=settings)

    if choice == "anthropic":
        if not settings.anthropic_api_key:
            raise ConfigurationError("LLM_PROVIDER=anthropic requires ANTHROPIC_API_KEY")
        return AnthropicLLMProvider(settings=settings)
    if choice == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("LLM_PROVIDER=openai requires OPENAI_API_KEY")
        return OpenAILLMProvider(settings=settings)
    if not settings.ollama_base_url:
        raise ConfigurationError("LLM_PROVIDER=ollama requires OLLAMA_BASE_URL")
    return OllamaLLMProvider(settings=settings)


def _build_embedding_provider(
    settings: Settings,
    http_client: httpx.AsyncClient,
    backoff: BackoffPolicy | None = None,
) -> IEmbeddingProvider:
    """Build the embedding backend chosen by ``settings.embedding_service``."""
    backoff = backoff or BackoffPolicy()
    service = settings.embedding_service

    if service == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("EMBEDDING_SERVICE=openai requires OPENAI_API_KEY")
        return OpenAIEmbeddingProvider(settings=settings, backoff=backoff)

    if service == "ollama":
        return OllamaEmbeddingProvider(
            base_url=settings.ollama_base_url,
            http_client=http_client,
            model=settings.ollama_embedding_model,
            pacing_delay=settings.ollama_embedding_delay,
            backoff=backoff,
            health_timeout=settings.health_timeout,
            embed_timeout=settings.embed_timeout,
        )

    return LocalServiceEmbeddingProvider(
        base_url=settings.local_embedding_url,
        http_client=http_client,
        dimension=settings.local_embedding_dimension,
        backoff=backoff,
        health_timeout=settings.health_timeout,
        embed_timeout=settings.embed_timeout,
    )


def _build_vector_store(
    settings: Settings,
    embedding_provider: IEmbeddingProvider,
    http_client: httpx.AsyncClient,
) -> ChromaHTTPProvider:
    return ChromaHTTPProvider(
        embedding_provider=embedding_provider,
        http_client=http_client,
        base_url=settings.chroma_base_url,
        tenant=settings.chroma_tenant,
        database=settings.chroma_database,
        collection_name=settings.chroma_collection,
        write_mode=settings.chroma_write_mode,
        timeout=settings.store_timeout,
    )


def _build_transcription_provider(settings: Settings) -> ITranscriptionProvider:
    """Build the speech-to-text backend.

    A missing Whisper API key is not fatal here: audio only matters for video
    and audio uploads, and the transcriber degrades to a sentinel transcript.
    """
    if settings.transcription_provider == "whisper_local":
        return WhisperLocalProvider(model_size=settings.whisper_model_size)

    if not settings.openai_api_key:
        logger.warning("whisper_api_key_missing", transcription_provider="whisper_api")
    return WhisperAPIProvider(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.subprocess_timeout,
    )


# ---------------------------------------------------------------------------
# Facade assembly
# ---------------------------------------------------------------------------


def build_study_assistant(settings: Settings | None = None) -> StudyAssistant:
    """Wire providers and services into a ready-to-use :class:`StudyAssistant`.

    The returned facade owns the shared HTTP client; close it with
    ``await assistant.aclose()`` (or use it as an async context manager).

    Raises
    ------
    ConfigurationError
        If the selected LLM or embedding backend lacks its credentials.
    """
    settings = settings or Settings()
    llm = _build_llm_provider(settings)
    transcription = _build_transcription_provider(settings)
    http_client = httpx.AsyncClient()
    embedding = _build_embedding_provider(settings, http_client)
    vector_store = _build_vector_store(settings, embedding, http_client)

    ingestion = IngestionService(
        extractors=ExtractorRegistry.default(
            ocr_enabled=settings.ocr_enabled,
            frame_interval=settings.frame_interval_seconds,
            subprocess_timeout=settings.subprocess_timeout,
        ),
        visual_analyzer=VisualAnalyzer(llm),
        transcriber=Transcriber(transcription),
        combiner=ContentCombiner(TextChunker(max_size=settings.chunk_size)),
        vector_store=vector_store,
        temp_root=settings.temp_dir,
        temp_max_age_seconds=settings.temp_max_age_seconds,
        asset_concurrency=settings.asset_concurrency,
    )
    retriever = Retriever(
        vector_store,
        top_k=settings.retrieval_top_k,
        page_size=settings.document_page_size,
    )

    logger.info(
        "study_assistant_built",
        llm=llm.get_provider_name(),
        embedding=embedding.get_provider_name(),
        transcription=transcription.get_provider_name(),
        vector_store=vector_store.get_provider_name(),
        collection=settings.chroma_collection,
        configured_llms=settings.get_available_llm_providers(),
    )
    return StudyAssistant(
        ingestion=ingestion,
        retriever=retriever,
        generation=GenerationService(llm),
        http_client=http_client,
    )
