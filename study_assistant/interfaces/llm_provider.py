"""Abstract base class for LLM service providers.

Defines the contract for the large-language-model backends used for
generation (questions, summaries, study plans) and for describing images
extracted from uploads.  Implementations wrap the Anthropic API, OpenAI (or
any OpenAI-compatible endpoint), or a local Ollama server.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider, OllamaLLMProvider
# Located in: study_assistant/providers/llm/
class ILLMProvider(ABC):
    """Contract for single-turn LLM calls: message in, text out.

    Providers must support plain text completion; vision is optional and
    declared via :meth:`supports_vision`.
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the task and the context.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        study_assistant.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    @abstractmethod
    async def vision_extract(self, image_bytes: bytes, prompt: str) -> str:
        """Describe an image using the model's vision capability.

        Raises
        ------
        study_assistant.utils.errors.LLMError
            If the API call fails or vision is not supported.
        """

    @abstractmethod
    def supports_vision(self) -> bool:
        """Return ``True`` if this provider can process image inputs."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials / base URL are configured."""
