"""Ollama embedding provider adapter (local/free).

Talks to Ollama's native ``/api/embeddings`` endpoint, which embeds exactly
one prompt per call.  Batches are therefore sent sequentially with a short
fixed pause between calls so a CPU-bound daemon is not flooded.  Health is
checked against ``/api/tags`` (lists installed models without inference).
"""

from __future__ import annotations

import asyncio

import httpx
import structlog

from study_assistant.interfaces.embedding_provider import IEmbeddingProvider
from study_assistant.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError
from study_assistant.utils.retry import BackoffPolicy

logger = structlog.get_logger(logger_name=__name__)

_MODEL_DIMENSIONS: dict[str, int] = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
    "snowflake-arctic-embed": 1024,
}


class OllamaEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by a local Ollama daemon."""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        model: str = "nomic-embed-text",
        pacing_delay: float = 0.1,
        backoff: BackoffPolicy | None = None,
        health_timeout: float = 5.0,
        embed_timeout: float = 60.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client
        self._model = model
        self._dimension = _MODEL_DIMENSIONS.get(model.split(":")[0], 768)
        self._pacing_delay = pacing_delay
        self._backoff = backoff or BackoffPolicy()
        self._health_timeout = health_timeout
        self._embed_timeout = embed_timeout

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        if not await self.health_check():
            raise EmbeddingError(
                message=f"Ollama at {self._base_url} is not reachable",
                provider_name=self.get_provider_name(),
            )

        embeddings: list[list[float]] = []
        try:
            for index, text in enumerate(texts):
                if index and self._pacing_delay > 0:
                    await asyncio.sleep(self._pacing_delay)
                vector = await self._backoff.run(
                    lambda text=text: self._post_embedding(text),
                    label=self.get_provider_name(),
                )
                embeddings.append(vector)
        except (RateLimitError, ProviderUnavailableError) as exc:
            raise EmbeddingError(
                message=f"Ollama embedding failed after retries: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("ollama_embedding_batch", model=self._model, batch_size=len(texts))
        return embeddings

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "ollama_embedding"

    def is_available(self) -> bool:
        return bool(self._base_url)

    async def health_check(self) -> bool:
        try:
            response = await self._http.get(
                f"{self._base_url}/api/tags", timeout=self._health_timeout
            )
        except httpx.HTTPError as exc:
            logger.warning("ollama_health_unreachable", url=self._base_url, error=str(exc))
            return False
        return response.status_code == 200

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _post_embedding(self, text: str) -> list[float]:
        try:
            response = await self._http.post(
                f"{self._base_url}/api/embeddings",
                json={"model": self._model, "prompt": text},
                timeout=self._embed_timeout,
            )
        except (httpx.TimeoutException, httpx.ConnectError) as exc:
            raise ProviderUnavailableError(
                f"Ollama request failed: {exc}", provider_name=self.get_provider_name()
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingError(
                message=f"Ollama request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code == 429:
            raise RateLimitError("Ollama rate limited (429)", self.get_provider_name())
        if response.status_code == 503:
            raise ProviderUnavailableError("Ollama model loading (503)", self.get_provider_name())
        if response.status_code != 200:
            raise EmbeddingError(
                message=f"Ollama returned {response.status_code}: {response.text[:200]}",
                provider_name=self.get_provider_name(),
            )

        try:
            vector = response.json()["embedding"]
        except (ValueError, KeyError, TypeError) as exc:
            raise EmbeddingError(
                message=f"Malformed Ollama response: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if not vector:
            raise EmbeddingError(
                message="Ollama returned an empty embedding",
                provider_name=self.get_provider_name(),
            )

        self._dimension = len(vector)
        return vector
