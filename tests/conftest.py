"""Shared pytest fixtures for the study-assistant test suite."""

from __future__ import annotations

import io
import json
import math
import re
import zlib
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import fitz
import httpx
import pytest
from PIL import Image, ImageDraw
from structlog.testing import capture_logs

from study_assistant.interfaces.embedding_provider import IEmbeddingProvider
from study_assistant.interfaces.llm_provider import ILLMProvider
from study_assistant.providers.vector_store.chroma_http_provider import ChromaHTTPProvider

CHROMA_URL = "http://chroma.test"


# ---------------------------------------------------------------------------
# Deterministic embedding provider
# ---------------------------------------------------------------------------


class KeywordEmbeddingProvider(IEmbeddingProvider):
    """Bag-of-words hashed into a small normalised vector.

    Texts sharing words land close together, which is all the retrieval
    tests need from a real model.
    """

    def __init__(self, dimension: int = 32) -> None:
        self._dimension = dimension
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._vector(text) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "keyword_test"

    def is_available(self) -> bool:
        return True

    async def health_check(self) -> bool:
        return True

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for word in re.findall(r"[a-z]+", text.lower()):
            vector[zlib.crc32(word.encode()) % self._dimension] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]


# ---------------------------------------------------------------------------
# In-memory ChromaDB v2 REST server for httpx.MockTransport
# ---------------------------------------------------------------------------


def _matches(metadata: dict[str, Any], where: dict[str, Any] | None) -> bool:
    if not where:
        return True
    for key, condition in where.items():
        if key == "$and":
            if not all(_matches(metadata, clause) for clause in condition):
                return False
        elif key == "$or":
            if not any(_matches(metadata, clause) for clause in condition):
                return False
        elif isinstance(condition, dict):
            value = metadata.get(key)
            if "$eq" in condition and value != condition["$eq"]:
                return False
            if "$in" in condition and value not in condition["$in"]:
                return False
        elif metadata.get(key) != condition:
            return False
    return True


class FakeChroma:
    """Just enough of Chroma's tenant/database/collection API for the provider."""

    def __init__(self) -> None:
        self.databases: set[str] = {"default_database"}
        self.collections: dict[str, dict[str, Any]] = {}
        self.records: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[tuple[str, str]] = []
        self.fail: dict[str, tuple[int, str]] = {}

    def count_requests(self, method: str, suffix: str) -> int:
        return sum(1 for m, path in self.requests if m == method and path.endswith(suffix))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        body = json.loads(request.content) if request.content else {}

        for suffix, (status, text) in self.fail.items():
            if path.endswith(suffix):
                return httpx.Response(status, text=text)

        if path == "/api/v2/heartbeat":
            return httpx.Response(200, json={"nanosecond heartbeat": 1})

        parts = path.strip("/").split("/")
        # api v2 tenants {t} databases [{d} collections [{name|id} [op]]]
        if len(parts) == 5 and request.method == "POST":
            name = body["name"]
            if name in self.databases:
                return httpx.Response(409, json={"error": "UniqueConstraintError"})
            self.databases.add(name)
            return httpx.Response(200, json={"name": name})

        if len(parts) >= 7 and parts[5] not in self.databases:
            return httpx.Response(404, json={"error": f"Database {parts[5]} not found"})

        if len(parts) == 7 and request.method == "POST":
            name = body["name"]
            if name in self.collections:
                return httpx.Response(409, json={"error": f"Collection {name} already exists"})
            collection = {
                "id": f"coll-{len(self.collections) + 1}",
                "name": name,
                "metadata": body.get("metadata") or {},
            }
            self.collections[name] = collection
            self.records[collection["id"]] = {}
            return httpx.Response(200, json=collection)

        if len(parts) == 8 and request.method == "GET":
            collection = self.collections.get(parts[7])
            if collection is None:
                return httpx.Response(404, json={"error": "NotFoundError"})
            return httpx.Response(200, json=collection)

        if len(parts) == 9 and request.method == "POST":
            return self._collection_op(parts[7], parts[8], body)

        return httpx.Response(404, json={"error": f"unhandled {request.method} {path}"})

    def _collection_op(self, collection_id: str, op: str, body: dict[str, Any]) -> httpx.Response:
        store = self.records.get(collection_id)
        if store is None:
            return httpx.Response(404, json={"error": "collection not found"})

        if op in ("upsert", "add"):
            for rid, doc, emb, meta in zip(
                body["ids"], body["documents"], body["embeddings"], body["metadatas"]
            ):
                if op == "add" and rid in store:
                    continue
                store[rid] = {"document": doc, "embedding": emb, "metadata": meta}
            return httpx.Response(200, json=True)

        if op == "query":
            query = body["query_embeddings"][0]
            candidates = [
                (rid, rec) for rid, rec in store.items()
                if _matches(rec["metadata"], body.get("where"))
            ]
            scored = sorted(
                (
                    (sum((a - b) ** 2 for a, b in zip(query, rec["embedding"])), rid, rec)
                    for rid, rec in candidates
                ),
                key=lambda item: item[0],
            )[: body.get("n_results", 10)]
            return httpx.Response(
                200,
                json={
                    "ids": [[rid for _, rid, _ in scored]],
                    "documents": [[rec["document"] for _, _, rec in scored]],
                    "metadatas": [[rec["metadata"] for _, _, rec in scored]],
                    "distances": [[dist for dist, _, _ in scored]],
                },
            )

        if op == "get":
            matching = [
                (rid, rec) for rid, rec in store.items()
                if _matches(rec["metadata"], body.get("where"))
            ]
            offset = body.get("offset") or 0
            limit = body.get("limit") or len(matching)
            page = matching[offset : offset + limit]
            return httpx.Response(
                200,
                json={
                    "ids": [rid for rid, _ in page],
                    "documents": [rec["document"] for _, rec in page],
                    "metadatas": [rec["metadata"] for _, rec in page],
                },
            )

        return httpx.Response(404, json={"error": f"unknown op {op}"})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def log_events():
    """Structured log events emitted during the test, captured instead of printed."""
    with capture_logs() as events:
        yield events


@pytest.fixture()
def fake_chroma() -> FakeChroma:
    return FakeChroma()


@pytest.fixture()
def chroma_http_client(fake_chroma: FakeChroma) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_chroma))


@pytest.fixture()
def keyword_embedder() -> KeywordEmbeddingProvider:
    return KeywordEmbeddingProvider()


@pytest.fixture()
def chroma_store(
    keyword_embedder: KeywordEmbeddingProvider,
    chroma_http_client: httpx.AsyncClient,
) -> ChromaHTTPProvider:
    return ChromaHTTPProvider(
        embedding_provider=keyword_embedder,
        http_client=chroma_http_client,
        base_url=CHROMA_URL,
    )


@pytest.fixture()
def mock_llm() -> MagicMock:
    """Vision-capable LLM mock; set ``complete`` / ``vision_extract`` return values per test."""
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(return_value="")
    llm.vision_extract = AsyncMock(return_value="A diagram.")
    llm.supports_vision.return_value = True
    llm.get_provider_name.return_value = "mock_llm"
    llm.is_available.return_value = True
    return llm


@pytest.fixture()
def png_bytes() -> bytes:
    """A 120x80 bar-chart-like PNG."""
    img = Image.new("RGB", (120, 80), (255, 255, 255))
    draw = ImageDraw.Draw(img)
    for i, height in enumerate((30, 55, 20, 70)):
        draw.rectangle([10 + i * 27, 80 - height, 30 + i * 27, 79], fill=(40, 90, 200))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def two_page_pdf(tmp_path: Path, png_bytes: bytes) -> Path:
    """PDF: page 1 is text only, page 2 has text plus one chart image."""
    path = tmp_path / "biology.pdf"
    doc = fitz.open()
    page1 = doc.new_page()
    page1.insert_text((72, 72), "Cells are the basic unit of life.")
    page2 = doc.new_page()
    page2.insert_text((72, 72), "Photosynthesis rates by light intensity.")
    page2.insert_image(fitz.Rect(72, 120, 312, 280), stream=png_bytes)
    doc.save(str(path))
    doc.close()
    return path
