"""ChromaDB vector store provider over the REST API (v2, tenant/database scoped).

Talks to a running Chroma server with ``httpx`` instead of the embedded
``chromadb`` client, so the store can live on another host and the write
path never loads an ONNX model.  All paths are rooted at::

    {base_url}/api/v2/tenants/{tenant}/databases/{database}

Collection ids are opaque and cached per logical name after the first
successful probe/create, so repeated ``ensure_collection`` calls cost no
requests.  Only the write path creates the database and collection; reads
probe and return nothing when the collection does not exist yet.  An
:class:`IEmbeddingProvider` is injected to embed documents on write and
query text on search; Chroma never computes embeddings itself.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from study_assistant.interfaces.embedding_provider import IEmbeddingProvider
from study_assistant.interfaces.vector_store_provider import IVectorStoreProvider
from study_assistant.models.content import RetrievalResult, VectorRecord
from study_assistant.utils.errors import EmbeddingError, StoreError

logger = structlog.get_logger(logger_name=__name__)

_ALREADY_EXISTS_MARKERS = ("already exists", "UniqueConstraintError")


class ChromaHTTPProvider(IVectorStoreProvider):
    """Vector store provider backed by a Chroma server's REST API.

    Parameters
    ----------
    embedding_provider:
        Produces vectors for documents and queries.
    http_client:
        Shared ``httpx.AsyncClient``; the caller owns its lifecycle.
    write_mode:
        ``"upsert"`` (default) overwrites records with the same id, making
        re-ingestion idempotent; ``"add"`` uses Chroma's insert-only endpoint.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        http_client: httpx.AsyncClient,
        base_url: str = "http://127.0.0.1:8000",
        tenant: str = "default_tenant",
        database: str = "default_database",
        collection_name: str = "study_materials",
        write_mode: str = "upsert",
        timeout: float = 30.0,
        batch_size: int = 500,
    ) -> None:
        if write_mode not in ("upsert", "add"):
            raise ValueError(f"write_mode must be 'upsert' or 'add', got {write_mode!r}")
        self._embedding_provider = embedding_provider
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._tenant = tenant
        self._database = database
        self._collection_name = collection_name
        self._write_mode = write_mode
        self._timeout = timeout
        self._batch_size = batch_size
        self._database_ready = False
        # logical name -> (opaque collection id, stored dimension or None)
        self._collections: dict[str, tuple[str, int | None]] = {}

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def _database_url(self) -> str:
        return f"{self._base_url}/api/v2/tenants/{self._tenant}/databases/{self._database}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def heartbeat(self) -> bool:
        try:
            await self._request("GET", f"{self._base_url}/api/v2/heartbeat")
            return True
        except StoreError as exc:
            logger.warning("chroma_heartbeat_failed", error=str(exc))
            return False

    async def ensure_database(self) -> bool:
        url = f"{self._base_url}/api/v2/tenants/{self._tenant}/databases"
        try:
            await self._request("POST", url, json={"name": self._database})
        except StoreError as exc:
            if _is_already_exists(exc):
                self._database_ready = True
                return True
            logger.error("chroma_ensure_database_failed", database=self._database, error=str(exc))
            return False
        logger.info("chroma_database_created", tenant=self._tenant, database=self._database)
        self._database_ready = True
        return True

    async def ensure_collection(self, name: str | None = None) -> bool:
        """Probe for the collection and create it when missing.

        The database is ensured once per provider before the first probe, so
        a non-default ``database`` works on a fresh server.
        """
        name = name or self._collection_name
        if name in self._collections:
            return True

        if not self._database_ready and not await self.ensure_database():
            return False

        if await self._probe_collection(name):
            return True

        payload = {
            "name": name,
            "metadata": {
                "hnsw:space": "cosine",
                "dimension": self._embedding_provider.get_dimension(),
                "embedding_provider": self._embedding_provider.get_provider_name(),
            },
        }
        try:
            data = await self._request("POST", f"{self._database_url}/collections", json=payload)
            self._remember_collection(name, data)
        except StoreError as exc:
            if _is_already_exists(exc):
                # Another pipeline created it between our probe and create.
                return await self._probe_collection(name)
            logger.error("chroma_create_collection_failed", collection=name, error=str(exc))
            return False

        logger.info("chroma_collection_created", collection=name, id=self._collections[name][0])
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(self, records: list[VectorRecord]) -> bool:
        if not records:
            return True

        embeddings = await self._embedding_provider.embed([r.document for r in records])
        if len(embeddings) != len(records) or any(not vector for vector in embeddings):
            raise EmbeddingError(
                message=(
                    f"Refusing to write {len(records)} records with "
                    f"{len(embeddings)} usable embeddings"
                ),
                provider_name=self._embedding_provider.get_provider_name(),
            )

        if not await self.ensure_collection():
            return False
        collection_id, _ = self._collections[self._collection_name]
        url = f"{self._database_url}/collections/{collection_id}/{self._write_mode}"

        for start in range(0, len(records), self._batch_size):
            batch = records[start : start + self._batch_size]
            payload = {
                "ids": [r.id for r in batch],
                "documents": [r.document for r in batch],
                "embeddings": embeddings[start : start + self._batch_size],
                "metadatas": [r.metadata for r in batch],
            }
            try:
                await self._request("POST", url, json=payload)
            except StoreError as exc:
                logger.error(
                    "chroma_write_failed",
                    mode=self._write_mode,
                    batch_start=start,
                    batch_size=len(batch),
                    error=str(exc),
                )
                return False

        # The stored vectors are the ground truth for later query-dimension checks.
        self._collections[self._collection_name] = (collection_id, len(embeddings[0]))

        logger.info(
            "chroma_records_written",
            mode=self._write_mode,
            count=len(records),
            collection=self._collection_name,
        )
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query(
        self,
        query_text: str,
        limit: int = 10,
        where: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        try:
            if not await self._resolve_collection():
                return []
            collection_id, stored_dim = self._collections[self._collection_name]
            query_embedding = await self._embedding_provider.embed_single(query_text)

            if stored_dim is not None and stored_dim != len(query_embedding):
                logger.error(
                    "embedding_dimension_mismatch",
                    stored_dim=stored_dim,
                    query_dim=len(query_embedding),
                    provider=self._embedding_provider.get_provider_name(),
                )
                return []

            payload: dict[str, Any] = {
                "query_embeddings": [query_embedding],
                "n_results": limit,
                "include": ["documents", "metadatas", "distances"],
            }
            if where:
                payload["where"] = where

            data = await self._request(
                "POST", f"{self._database_url}/collections/{collection_id}/query", json=payload
            )
        except (StoreError, EmbeddingError) as exc:
            logger.warning("chroma_query_failed", query_length=len(query_text), error=str(exc))
            return []

        results = _parse_query_response(data)
        logger.info(
            "chroma_query",
            query_length=len(query_text),
            limit=limit,
            filtered=bool(where),
            results_count=len(results),
        )
        return results

    async def get_by_document(
        self,
        document_id: str,
        page_size: int = 100,
    ) -> list[RetrievalResult]:
        """Page through ``/get`` with a ``document_id`` filter until a short page."""
        try:
            if not await self._resolve_collection():
                return []
            collection_id, _ = self._collections[self._collection_name]
            url = f"{self._database_url}/collections/{collection_id}/get"

            results: list[RetrievalResult] = []
            offset = 0
            while True:
                data = await self._request(
                    "POST",
                    url,
                    json={
                        "where": {"document_id": document_id},
                        "include": ["documents", "metadatas"],
                        "limit": page_size,
                        "offset": offset,
                    },
                )
                page = _parse_get_response(data)
                results.extend(page)
                if len(page) < page_size:
                    break
                offset += page_size
        except StoreError as exc:
            logger.warning("chroma_get_failed", document_id=document_id, error=str(exc))
            return []

        logger.info("chroma_get_by_document", document_id=document_id, count=len(results))
        return results

    def get_provider_name(self) -> str:
        return "chromadb_http"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _resolve_collection(self) -> bool:
        """Read-path lookup: cached id or a GET, never a create."""
        name = self._collection_name
        if name in self._collections:
            return True
        if await self._probe_collection(name):
            return True
        logger.info("chroma_collection_missing", collection=name)
        return False

    async def _probe_collection(self, name: str) -> bool:
        try:
            data = await self._request("GET", f"{self._database_url}/collections/{name}")
            self._remember_collection(name, data)
        except StoreError as exc:
            logger.debug("chroma_collection_probe_miss", collection=name, error=str(exc))
            return False
        return True

    def _remember_collection(self, name: str, data: Any) -> None:
        if not isinstance(data, dict) or not data.get("id"):
            raise StoreError(
                f"Collection response for {name!r} has no id", provider_name=self.get_provider_name()
            )
        metadata = data.get("metadata") or {}
        dimension = data.get("dimension") or metadata.get("dimension")
        self._collections[name] = (str(data["id"]), int(dimension) if dimension else None)

    async def _request(self, method: str, url: str, json: Any = None) -> Any:
        """Send one request; non-2xx and transport failures become :class:`StoreError`."""
        try:
            response = await self._http.request(method, url, json=json, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise StoreError(
                f"{method} {url} failed: {exc}", provider_name=self.get_provider_name()
            ) from exc

        if response.status_code >= 300:
            raise StoreError(
                f"{method} {url} returned {response.status_code}: {response.text[:500]}",
                provider_name=self.get_provider_name(),
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


def _is_already_exists(exc: StoreError) -> bool:
    return " 409:" in exc.message or any(m in exc.message for m in _ALREADY_EXISTS_MARKERS)


def _parse_query_response(data: Any) -> list[RetrievalResult]:
    """Unpack Chroma's nested (one list per query embedding) result arrays."""
    if not isinstance(data, dict) or not data.get("documents") or not data["documents"][0]:
        return []

    documents = data["documents"][0]
    ids = (data.get("ids") or [[]])[0] or [""] * len(documents)
    metadatas = (data.get("metadatas") or [[]])[0] or [{}] * len(documents)
    distances = (data.get("distances") or [[]])[0] or [None] * len(documents)

    return [
        RetrievalResult(id=rid, content=doc, metadata=meta or {}, distance=dist)
        for rid, doc, meta, dist in zip(ids, documents, metadatas, distances)
        if doc
    ]


def _parse_get_response(data: Any) -> list[RetrievalResult]:
    if not isinstance(data, dict) or not data.get("ids"):
        return []
    ids = data["ids"]
    documents = data.get("documents") or [""] * len(ids)
    metadatas = data.get("metadatas") or [{}] * len(ids)
    return [
        RetrievalResult(id=rid, content=doc or "", metadata=meta or {})
        for rid, doc, meta in zip(ids, documents, metadatas)
    ]
