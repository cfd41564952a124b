"""Ollama LLM provider adapter.

Ollama exposes an OpenAI-compatible ``/v1`` API, so this adapter reuses the
``openai.AsyncOpenAI`` client pointed at the local server instead of a
separate HTTP client.  Defaults to ``llama3.1`` for text and ``llava`` for
vision (``ollama pull llama3.1 && ollama pull llava``).
"""

from __future__ import annotations

import base64

import openai
import structlog

from study_assistant.config.settings import Settings
from study_assistant.interfaces.llm_provider import ILLMProvider
from study_assistant.providers.llm.media import detect_media_type
from study_assistant.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server."""

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.ollama_base_url
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url.rstrip('/')}/v1",
            # The SDK requires a non-empty key; Ollama ignores it.
            api_key="ollama",
            timeout=settings.llm_timeout,
        )
        self._text_model = settings.ollama_text_model
        self._vision_model = settings.ollama_vision_model

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMError(
                message="Ollama returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_completion", model=self._text_model)
        return content

    async def vision_extract(self, image_bytes: bytes, prompt: str) -> str:
        b64 = base64.b64encode(image_bytes).decode("utf-8")
        media_type = detect_media_type(image_bytes)
        try:
            response = await self._client.chat.completions.create(
                model=self._vision_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{media_type};base64,{b64}"},
                            },
                        ],
                    }
                ],
                max_tokens=1500,
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama vision API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMError(
                message="Ollama vision returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_vision_extract", model=self._vision_model)
        return content

    def supports_vision(self) -> bool:
        return bool(self._vision_model)

    def is_available(self) -> bool:
        return bool(self._base_url)

    def get_provider_name(self) -> str:
        return "ollama"
