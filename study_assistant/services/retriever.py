"""Read-path: reconstruct per-document context from the vector store.

Three views over stored chunks:

    relevant_context      top-K similarity search for a topic, scoped to
                          one document; image descriptions optional
    all_document_content  every chunk of one document via paginated
                          metadata fetch; optionally plain text only
    search                global similarity search with optional
                          document-id and content-type filters

Filters are pushed down to the store as ``where`` clauses and applied again
locally, so a store that ignores a filter still cannot leak other
documents' chunks.  Result order is always the store's order (ascending
distance for queries); results are deduplicated by record id but never
re-sorted.
"""

from __future__ import annotations

from typing import Any, Iterable

import structlog

from study_assistant.interfaces.vector_store_provider import IVectorStoreProvider
from study_assistant.models.content import ContentType, RetrievalResult

logger = structlog.get_logger(logger_name=__name__)


class Retriever:
    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        top_k: int = 10,
        page_size: int = 100,
    ) -> None:
        self._store = vector_store
        self._top_k = top_k
        self._page_size = page_size

    async def relevant_context(
        self,
        document_id: str,
        topic: str,
        include_visual: bool = True,
    ) -> list[RetrievalResult]:
        """Top-K chunks of *document_id* nearest to *topic*.

        With ``include_visual=False`` no ``image_description`` chunk is ever
        returned.
        """
        results = await self._store.query(
            topic,
            limit=self._top_k,
            where={"document_id": document_id},
        )
        excluded = set() if include_visual else {ContentType.IMAGE_DESCRIPTION.value}
        kept = _dedupe(
            r for r in results
            if r.document_id == document_id and r.content_type not in excluded
        )
        logger.info(
            "relevant_context_retrieved",
            document_id=document_id,
            raw=len(results),
            kept=len(kept),
            include_visual=include_visual,
        )
        return kept

    async def all_document_content(
        self,
        document_id: str,
        include_multimedia: bool = True,
    ) -> list[RetrievalResult]:
        """Every stored chunk of *document_id*, in store order.

        ``include_multimedia=False`` keeps only plain ``text`` chunks.  Combined
        chunks are dropped too, because they carry transcripts and image
        descriptions inline.
        """
        results = await self._store.get_by_document(document_id, page_size=self._page_size)
        kept = _dedupe(
            r for r in results
            if r.document_id == document_id
            and (include_multimedia or r.content_type == ContentType.TEXT.value)
        )
        logger.info(
            "document_content_retrieved",
            document_id=document_id,
            count=len(kept),
            include_multimedia=include_multimedia,
        )
        return kept

    async def search(
        self,
        query: str,
        document_ids: list[str] | None = None,
        content_types: list[ContentType] | None = None,
        limit: int | None = None,
    ) -> list[RetrievalResult]:
        """Similarity search across documents with optional filters."""
        allowed_types = {ContentType(t).value for t in content_types} if content_types else None
        allowed_docs = set(document_ids) if document_ids else None

        results = await self._store.query(
            query,
            limit=limit or self._top_k,
            where=_build_where(allowed_docs, allowed_types),
        )
        return _dedupe(
            r for r in results
            if (allowed_docs is None or r.document_id in allowed_docs)
            and (allowed_types is None or r.content_type in allowed_types)
        )


def _build_where(
    document_ids: set[str] | None,
    content_types: set[str] | None,
) -> dict[str, Any] | None:
    clauses: list[dict[str, Any]] = []
    if document_ids:
        clauses.append({"document_id": {"$in": sorted(document_ids)}})
    if content_types:
        clauses.append({"content_type": {"$in": sorted(content_types)}})
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _dedupe(results: Iterable[RetrievalResult]) -> list[RetrievalResult]:
    seen: set[str] = set()
    unique: list[RetrievalResult] = []
    for result in results:
        key = result.id or result.content
        if key in seen:
            continue
        seen.add(key)
        unique.append(result)
    return unique
