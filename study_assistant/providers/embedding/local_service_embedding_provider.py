"""Embedding provider for a locally hosted sentence-transformers service.

The service exposes two endpoints:

    GET  /health                      -> 200 when the model is loaded
    POST /embed  {"texts": [...]}     -> {"embeddings": [[...]], "count": N, "dimension": D}

Every batch is preceded by a health probe; a failed probe raises
:class:`EmbeddingError` without attempting the batch.  While the model warms
up the service answers 503, and under load 429; both are retried by the
:class:`BackoffPolicy` (3 attempts by default).
"""

from __future__ import annotations

import httpx
import structlog

from study_assistant.interfaces.embedding_provider import IEmbeddingProvider
from study_assistant.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError
from study_assistant.utils.retry import BackoffPolicy

logger = structlog.get_logger(logger_name=__name__)


class LocalServiceEmbeddingProvider(IEmbeddingProvider):
    """HTTP client for the ``/health`` + ``/embed`` embedding service contract.

    Parameters
    ----------
    base_url:
        Service root, e.g. ``http://localhost:8001``.
    http_client:
        Shared ``httpx.AsyncClient``; the caller owns its lifecycle.
    dimension:
        Expected vector size until the service reports its own.
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        dimension: int = 384,
        backoff: BackoffPolicy | None = None,
        health_timeout: float = 5.0,
        embed_timeout: float = 60.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client
        self._dimension = dimension
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
                message=f"Embedding service at {self._base_url} failed its health check",
                provider_name=self.get_provider_name(),
            )

        try:
            embeddings = await self._backoff.run(
                lambda: self._post_embed(texts),
                label=self.get_provider_name(),
            )
        except (RateLimitError, ProviderUnavailableError) as exc:
            raise EmbeddingError(
                message=f"Embedding service still failing after retries: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc

        if len(embeddings) != len(texts):
            raise EmbeddingError(
                message=f"Expected {len(texts)} embeddings, got {len(embeddings)}",
                provider_name=self.get_provider_name(),
            )

        logger.info(
            "local_embedding_batch",
            batch_size=len(texts),
            dimension=self._dimension,
        )
        return embeddings

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "local_embedding_service"

    def is_available(self) -> bool:
        return bool(self._base_url)

    async def health_check(self) -> bool:
        """``GET /health``; any non-200 or transport error counts as unhealthy."""
        try:
            response = await self._http.get(
                f"{self._base_url}/health", timeout=self._health_timeout
            )
        except httpx.HTTPError as exc:
            logger.warning("local_embedding_health_unreachable", url=self._base_url, error=str(exc))
            return False

        if response.status_code != 200:
            logger.warning(
                "local_embedding_health_failed",
                url=self._base_url,
                status=response.status_code,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _post_embed(self, texts: list[str]) -> list[list[float]]:
        """Single ``POST /embed`` attempt."""
        try:
            response = await self._http.post(
                f"{self._base_url}/embed",
                json={"texts": texts},
                timeout=self._embed_timeout,
            )
        except (httpx.TimeoutException, httpx.ConnectError) as exc:
            raise ProviderUnavailableError(
                f"Embedding request failed: {exc}", provider_name=self.get_provider_name()
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingError(
                message=f"Embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code == 429:
            raise RateLimitError("Embedding service rate limited (429)", self.get_provider_name())
        if response.status_code == 503:
            raise ProviderUnavailableError(
                "Embedding service warming up (503)", self.get_provider_name()
            )
        if response.status_code != 200:
            raise EmbeddingError(
                message=f"Embedding service returned {response.status_code}: {response.text[:200]}",
                provider_name=self.get_provider_name(),
            )

        try:
            data = response.json()
            embeddings = data["embeddings"]
        except (ValueError, KeyError, TypeError) as exc:
            raise EmbeddingError(
                message=f"Malformed embedding response: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        dimension = data.get("dimension")
        if isinstance(dimension, int) and dimension > 0:
            self._dimension = dimension
        return embeddings
