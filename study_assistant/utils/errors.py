"""Custom exception hierarchy for the study assistant.

All application exceptions inherit from :class:`StudyAssistantError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb_http", "ffmpeg") caused the
failure.

The hierarchy is organized by pipeline stage:

    StudyAssistantError  (base -- catch-all for any study-assistant error)
    +-- ConfigurationError       (unsupported media, missing credentials)
    +-- ExtractionError          (extractor tool failure; aborts the file)
    +-- EmbeddingError           (embedding backend failure; aborts the write)
    +-- StoreError               (vector-store HTTP failure)
    +-- GenerationParseError     (LLM output is not decodable JSON)
    +-- LLMError                 (any LLM API call failure)
    +-- TranscriptionError       (speech-to-text backend failure)
    +-- RateLimitError           (transient: provider returned 429)
    +-- ProviderUnavailableError (transient: provider warming up / unreachable)

Callers retry on RateLimitError and ProviderUnavailableError, degrade to
sentinels on LLMError/TranscriptionError inside the analyzers, turn
StoreError into a ``False`` result, and abort on everything else.
"""


class StudyAssistantError(Exception):
    """Base exception for all study-assistant errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[local_embedding_service] Health check failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration / extraction errors
# ---------------------------------------------------------------------------

class ConfigurationError(StudyAssistantError):
    """Raised when configuration is invalid, missing, or names an unsupported kind."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(StudyAssistantError):
    """Raised when an extractor cannot read a file (corrupt input, missing tool, timeout)."""

    def __init__(
        self,
        message: str = "Content extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding / vector-store errors
# ---------------------------------------------------------------------------

class EmbeddingError(StudyAssistantError):
    """Raised when an embedding backend fails or returns the wrong number of vectors."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreError(StudyAssistantError):
    """Raised when the vector store rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str = "Vector store request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Generation errors
# ---------------------------------------------------------------------------

class GenerationParseError(StudyAssistantError):
    """Raised when generated output cannot be decoded into structured data."""

    def __init__(
        self,
        message: str = "Generated output could not be parsed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(StudyAssistantError):
    """Raised when an LLM API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TranscriptionError(StudyAssistantError):
    """Raised when a speech-to-text backend fails."""

    def __init__(
        self,
        message: str = "Audio transcription failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Transient provider conditions (retried by BackoffPolicy)
# ---------------------------------------------------------------------------

class RateLimitError(StudyAssistantError):
    """Raised when a provider answers with a rate-limit response (HTTP 429)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(StudyAssistantError):
    """Raised when a provider is warming up (HTTP 503) or unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
