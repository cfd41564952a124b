"""Abstract base class for vector-store providers.

The store owns collection lifecycle, batched writes, similarity queries and
metadata-filtered fetches.  Expected failures are reported through return
values (``False`` / ``[]``) and logged; only embedding failures on the write
path raise, because writing without vectors would silently lose content.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from study_assistant.models.content import RetrievalResult, VectorRecord


# Concrete implementation: ChromaHTTPProvider (ChromaDB REST API v2)
# Located in: study_assistant/providers/vector_store/
class IVectorStoreProvider(ABC):
    """Contract for the vector database backing retrieval."""

    @abstractmethod
    async def heartbeat(self) -> bool:
        """Return ``True`` if the store answers its heartbeat endpoint."""

    @abstractmethod
    async def ensure_database(self) -> bool:
        """Create the configured database if needed; "already exists" is success."""

    @abstractmethod
    async def ensure_collection(self, name: str | None = None) -> bool:
        """Create-or-get a collection by logical name.

        Calling this twice for the same name returns ``True`` both times and
        the second call performs no create request.
        """

    @abstractmethod
    async def upsert(self, records: list[VectorRecord]) -> bool:
        """Embed and write *records* in batches.

        Returns
        -------
        bool
            ``True`` once every record is written; ``False`` when the store
            rejected a batch (status and body are logged).

        Raises
        ------
        study_assistant.utils.errors.EmbeddingError
            If vectors are missing or mismatched.  Raised before the store
            is contacted.
        """

    @abstractmethod
    async def query(
        self,
        query_text: str,
        limit: int = 10,
        where: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """Nearest-neighbour search, results in store order (ascending distance).

        Any failure yields ``[]`` and is logged.
        """

    @abstractmethod
    async def get_by_document(
        self,
        document_id: str,
        page_size: int = 100,
    ) -> list[RetrievalResult]:
        """Fetch every record of one document through paginated metadata filtering."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
