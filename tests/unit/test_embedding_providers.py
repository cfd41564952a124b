"""Unit tests for embedding provider adapters — local service, Ollama, OpenAI."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from study_assistant.config.settings import Settings
from study_assistant.providers.embedding.local_service_embedding_provider import (
    LocalServiceEmbeddingProvider,
)
from study_assistant.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from study_assistant.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from study_assistant.utils.errors import EmbeddingError

LOCAL_URL = "http://embed.test"
OLLAMA_URL = "http://ollama.test"


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "ollama_base_url": OLLAMA_URL,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _client(handler) -> httpx.AsyncClient:  # noqa: ANN001
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class _ScriptedService:
    """Answers ``/health`` with 200 and ``/embed`` with a scripted status sequence."""

    def __init__(self, embed_statuses: list[int], health_status: int = 200) -> None:
        self.embed_statuses = list(embed_statuses)
        self.health_status = health_status
        self.embed_calls = 0
        self.health_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/health":
            self.health_calls += 1
            return httpx.Response(self.health_status, json={"status": "ok"})
        if request.url.path == "/embed":
            self.embed_calls += 1
            status = self.embed_statuses.pop(0) if self.embed_statuses else 200
            if status != 200:
                return httpx.Response(status, text="busy")
            texts = json.loads(request.content)["texts"]
            return httpx.Response(
                200,
                json={
                    "embeddings": [[0.1, 0.2, 0.3] for _ in texts],
                    "count": len(texts),
                    "dimension": 3,
                },
            )
        return httpx.Response(404)


# ======================================================================
# Local model service (sentence-transformers behind /health + /embed)
# ======================================================================


class TestLocalServiceEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_embed_returns_one_vector_per_text(self) -> None:
        service = _ScriptedService([200])
        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(service))

        vectors = await provider.embed(["Hello world", "This is a test"])

        assert len(vectors) == 2
        assert provider.get_dimension() == 3
        assert service.health_calls == 1

    @pytest.mark.asyncio
    async def test_empty_batch_makes_no_calls(self) -> None:
        service = _ScriptedService([])
        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(service))
        assert await provider.embed([]) == []
        assert service.health_calls == 0

    @pytest.mark.asyncio
    async def test_429_then_200_succeeds_after_one_delay(self) -> None:
        service = _ScriptedService([429, 200])
        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(service))

        with patch("study_assistant.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            vectors = await provider.embed(["a", "b"])

        assert len(vectors) == 2
        assert service.embed_calls == 2
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_503_warmup_is_retried(self) -> None:
        service = _ScriptedService([503, 503, 200])
        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(service))

        with patch("study_assistant.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            vectors = await provider.embed(["a"])

        assert len(vectors) == 1
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_three_429s_raise_embedding_error(self) -> None:
        service = _ScriptedService([429, 429, 429])
        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(service))

        with patch("study_assistant.utils.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(EmbeddingError):
                await provider.embed(["a"])
        assert service.embed_calls == 3

    @pytest.mark.asyncio
    async def test_failed_health_check_skips_batch(self) -> None:
        service = _ScriptedService([200], health_status=500)
        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(service))

        with pytest.raises(EmbeddingError, match="health check"):
            await provider.embed(["a"])
        assert service.embed_calls == 0

    @pytest.mark.asyncio
    async def test_unreachable_service_is_unhealthy(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(handler))
        assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_non_transient_error_is_not_retried(self) -> None:
        service = _ScriptedService([400])
        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(service))

        with patch("study_assistant.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(EmbeddingError, match="400"):
                await provider.embed(["a"])
        assert service.embed_calls == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_count_mismatch_is_total_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/health":
                return httpx.Response(200)
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2]], "dimension": 2})

        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(handler))
        with pytest.raises(EmbeddingError, match="Expected 2"):
            await provider.embed(["a", "b"])

    def test_provider_name(self) -> None:
        provider = LocalServiceEmbeddingProvider(LOCAL_URL, _client(_ScriptedService([])))
        assert provider.get_provider_name() == "local_embedding_service"
        assert provider.is_available() is True


# ======================================================================
# Ollama (one prompt per call)
# ======================================================================


class TestOllamaEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_embeds_sequentially_one_text_per_call(self) -> None:
        prompts: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": []})
            body = json.loads(request.content)
            assert body["model"] == "nomic-embed-text"
            prompts.append(body["prompt"])
            return httpx.Response(200, json={"embedding": [0.5] * 768})

        provider = OllamaEmbeddingProvider(OLLAMA_URL, _client(handler), pacing_delay=0)
        vectors = await provider.embed(["first", "second", "third"])

        assert prompts == ["first", "second", "third"]
        assert len(vectors) == 3
        assert provider.get_dimension() == 768

    @pytest.mark.asyncio
    async def test_unreachable_daemon_raises_before_embedding(self) -> None:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            if request.url.path == "/api/tags":
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"embedding": [0.1]})

        provider = OllamaEmbeddingProvider(OLLAMA_URL, _client(handler))
        with pytest.raises(EmbeddingError):
            await provider.embed(["a"])
        assert "/api/embeddings" not in calls

    @pytest.mark.asyncio
    async def test_empty_embedding_is_an_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": []})
            return httpx.Response(200, json={"embedding": []})

        provider = OllamaEmbeddingProvider(OLLAMA_URL, _client(handler), pacing_delay=0)
        with pytest.raises(EmbeddingError, match="empty"):
            await provider.embed(["a"])


# ======================================================================
# OpenAI / OpenAI-compatible
# ======================================================================


def _rate_limit_error() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    return openai.RateLimitError(
        "rate limited", response=httpx.Response(429, request=request), body=None
    )


def _embedding_response(count: int, dim: int = 1536) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=[0.1] * dim) for _ in range(count)]
    response.usage = MagicMock(total_tokens=10 * count)
    return response


class TestOpenAIEmbeddingProvider:
    def test_provider_name_reflects_base_url(self) -> None:
        assert OpenAIEmbeddingProvider(_settings()).get_provider_name() == "openai_embedding"
        compatible = OpenAIEmbeddingProvider(_settings(openai_base_url="https://api.together.xyz/v1"))
        assert compatible.get_provider_name() == "openai-compatible_embedding"

    def test_is_available_without_key(self) -> None:
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    def test_default_model_dimension(self) -> None:
        assert OpenAIEmbeddingProvider(_settings()).get_dimension() == 1536

    @pytest.mark.asyncio
    async def test_embed_success(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_embedding_response(2))

        with patch(
            "study_assistant.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings())
            result = await provider.embed(["hello", "world"])

        assert len(result) == 2
        mock_client.embeddings.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_succeeds(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=[_rate_limit_error(), _embedding_response(1)]
        )

        with patch(
            "study_assistant.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ), patch("study_assistant.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            provider = OpenAIEmbeddingProvider(_settings())
            result = await provider.embed(["hello"])

        assert len(result) == 1
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_persistent_rate_limit_raises_embedding_error(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=[_rate_limit_error()] * 3)

        with patch(
            "study_assistant.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ), patch("study_assistant.utils.retry.asyncio.sleep", new_callable=AsyncMock):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(EmbeddingError):
                await provider.embed(["hello"])

        assert mock_client.embeddings.create.await_count == 3

    @pytest.mark.asyncio
    async def test_sdk_does_not_retry_underneath_the_policy(self) -> None:
        requests: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request.url.path)
            return httpx.Response(429, json={"error": {"message": "rate limited"}})

        provider = OpenAIEmbeddingProvider(
            _settings(openai_base_url="https://embeddings.test/v1"),
            http_client=_client(handler),
        )
        with patch("study_assistant.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(EmbeddingError):
                await provider.embed(["hello"])

        assert requests == ["/v1/embeddings"] * 3
        assert sleep.await_count == 2
