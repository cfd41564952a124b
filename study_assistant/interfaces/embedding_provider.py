"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into fixed-length vectors.  Every
backend is reached over HTTP: a hosted OpenAI-compatible API, a locally
hosted sentence-transformers service, or an Ollama daemon.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider        - hosted, batched (requires API key)
#   LocalServiceEmbeddingProvider  - sentence-transformers service (/health, /embed)
#   OllamaEmbeddingProvider        - native /api/embeddings, one text per call
# Located in: study_assistant/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the vector store."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Exactly ``len(texts)`` vectors, positionally aligned with
            *texts*.  A backend that cannot produce every vector raises
            instead of returning a partial list.

        Raises
        ------
        study_assistant.utils.errors.EmbeddingError
            If the backend is unhealthy, retries are exhausted, or the
            response count does not match the input count.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one string (e.g. a search query)."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``),
        ``768`` (``nomic-embed-text``), ``384`` (``all-MiniLM-L6-v2``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (no network call)."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Probe the backend; ``True`` when it is ready to embed."""
