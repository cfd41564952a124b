"""Write-path orchestrator: file → extract → describe/transcribe → chunk → store.

Ordering guarantees:

    - The media kind is resolved from the filename before any network call,
      so an unsupported upload fails with ConfigurationError immediately.
    - Extraction failure aborts the file; nothing is written.
    - Image descriptions run concurrently (bounded) and are re-sorted by
      position before combination.
    - Vectors are produced for the whole batch before the first store
      write, and records with missing vectors are never written.

Scratch files live in a per-run workspace that is removed on exit; the
janitor sweep afterwards removes anything a crashed run left behind.
"""

from __future__ import annotations

import time
from collections import Counter
from pathlib import Path

import structlog

from study_assistant.interfaces.vector_store_provider import IVectorStoreProvider
from study_assistant.models.content import IngestionResult, VectorRecord
from study_assistant.models.document import DocumentAsset
from study_assistant.services.ingestion.content_combiner import ContentCombiner
from study_assistant.services.ingestion.extractors import ExtractorRegistry
from study_assistant.services.transcriber import Transcriber
from study_assistant.services.visual_analyzer import VisualAnalyzer
from study_assistant.utils.errors import ExtractionError, StoreError
from study_assistant.utils.temp_files import IngestionWorkspace, sweep_stale_files

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Turns one uploaded file into stored, retrievable chunks."""

    def __init__(
        self,
        extractors: ExtractorRegistry,
        visual_analyzer: VisualAnalyzer,
        transcriber: Transcriber,
        combiner: ContentCombiner,
        vector_store: IVectorStoreProvider,
        temp_root: str | Path = "./data/tmp",
        temp_max_age_seconds: int = 3600,
        asset_concurrency: int = 4,
    ) -> None:
        self._extractors = extractors
        self._visual_analyzer = visual_analyzer
        self._transcriber = transcriber
        self._combiner = combiner
        self._vector_store = vector_store
        self._temp_root = Path(temp_root)
        self._temp_max_age = temp_max_age_seconds
        self._asset_concurrency = asset_concurrency

    async def ingest(self, file_path: str | Path, filename: str | None = None) -> IngestionResult:
        """Ingest *file_path* and return a summary of what was stored.

        Parameters
        ----------
        file_path:
            Path to the uploaded file on disk.
        filename:
            Original upload name; defaults to the basename of *file_path*.
            Its extension decides the media kind.

        Raises
        ------
        ConfigurationError
            Unsupported file type.
        ExtractionError
            The extractor failed or produced no content.
        EmbeddingError
            Vectors could not be produced for the batch.
        StoreError
            The vector store rejected the write.
        """
        file_path = Path(file_path)
        asset = DocumentAsset.from_filename(filename or file_path.name)
        log = logger.bind(document_id=asset.document_id, filename=asset.filename)
        start = time.perf_counter()
        log.info("ingestion_started", media_kind=asset.media_kind.value)

        with IngestionWorkspace(self._temp_root, asset.document_id) as workspace:
            extraction = await self._extractors.extract(file_path, asset.media_kind, workspace.path)
            descriptions = await self._visual_analyzer.describe_all(
                extraction.images, concurrency=self._asset_concurrency
            )
            transcript = (
                await self._transcriber.transcribe(extraction.audio)
                if extraction.audio is not None
                else None
            )

        chunks = self._combiner.combine(asset, extraction, descriptions, transcript)
        if not chunks:
            raise ExtractionError(f"No content could be extracted from {asset.filename}")

        records = [VectorRecord.from_chunk(chunk, asset) for chunk in chunks]
        if not await self._vector_store.upsert(records):
            raise StoreError(
                f"Vector store rejected {len(records)} records for {asset.document_id}",
                provider_name=self._vector_store.get_provider_name(),
            )

        sweep_stale_files(self._temp_root, self._temp_max_age)

        by_type = Counter(chunk.content_type.value for chunk in chunks)
        result = IngestionResult(
            document_id=asset.document_id,
            filename=asset.filename,
            media_kind=asset.media_kind,
            chunks_by_type=dict(by_type),
            images_analyzed=len(descriptions),
            has_transcript=bool(transcript),
            degraded_chunks=sum(1 for chunk in chunks if chunk.degraded),
            processing_time=round(time.perf_counter() - start, 3),
        )
        log.info(
            "ingestion_complete",
            chunks=result.total_chunks,
            images=result.images_analyzed,
            degraded=result.degraded_chunks,
            seconds=result.processing_time,
        )
        return result
