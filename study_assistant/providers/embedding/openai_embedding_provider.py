"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports both real OpenAI and OpenAI-compatible providers (TogetherAI,
Fireworks) via custom ``base_url`` and model name settings.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from study_assistant.config.settings import Settings
from study_assistant.interfaces.embedding_provider import IEmbeddingProvider
from study_assistant.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError
from study_assistant.utils.retry import BackoffPolicy

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) by default.  Rate-limit and
    server-side errors are retried through the injected
    :class:`BackoffPolicy`; everything else fails the batch immediately.
    """

    def __init__(
        self,
        settings: Settings,
        backoff: BackoffPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = settings.openai_api_key

        # BackoffPolicy owns retries; the SDK must not retry underneath it.
        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": settings.embed_timeout,
            "max_retries": 0,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        if http_client is not None:
            client_kwargs["http_client"] = http_client

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_embedding_model or "text-embedding-3-small"
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 768)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )
        self._backoff = backoff or BackoffPolicy()

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, splitting into batches of 2048 per API call."""
        if not texts:
            return []

        all_embeddings: list[list[float]] = []
        try:
            for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
                batch = texts[start : start + _OPENAI_BATCH_LIMIT]
                vectors = await self._backoff.run(
                    lambda batch=batch: self._embed_batch(batch),
                    label=self._provider_label,
                )
                all_embeddings.extend(vectors)
        except (RateLimitError, ProviderUnavailableError) as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} gave up after retries: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc

        if len(all_embeddings) != len(texts):
            raise EmbeddingError(
                message=f"Expected {len(texts)} embeddings, got {len(all_embeddings)}",
                provider_name=self.get_provider_name(),
            )
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    async def health_check(self) -> bool:
        # The hosted API exposes no health endpoint; credentials are the gate.
        return self.is_available()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        """One API call, translating transient SDK errors for the backoff policy."""
        try:
            response = await self._client.embeddings.create(input=batch, model=self._model)
        except openai.RateLimitError as exc:
            raise RateLimitError(str(exc), provider_name=self.get_provider_name()) from exc
        except (openai.APIConnectionError, openai.InternalServerError) as exc:
            raise ProviderUnavailableError(str(exc), provider_name=self.get_provider_name()) from exc
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "openai_embedding_batch",
            model=self._model,
            provider=self._provider_label,
            batch_size=len(batch),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in response.data]
