"""Abstract base class for audio transcription providers.

# ─── ADAPTER PATTERN ───────────────────────────────────────────────────
#
# Concrete implementations wrap a specific speech-to-text backend
# (OpenAI Whisper API, local faster-whisper) behind this interface so the
# Transcriber service does not need to know which backend is in use.
# Both produce identical TranscriptionResult objects.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class TranscriptionResult(BaseModel):
    """Immutable result from an audio transcription."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Full transcribed text.")
    language: str = Field(default="en", description="Detected or specified language code.")
    duration_seconds: float = Field(default=0.0, description="Audio duration in seconds.")
    segments: list[dict[str, float | str]] = Field(
        default_factory=list,
        description="Segment-level data: [{'start': 0.0, 'end': 2.5, 'text': '...'}]",
    )


class ITranscriptionProvider(ABC):
    """Contract for audio transcription backends."""

    @abstractmethod
    async def transcribe(
        self,
        audio_path: str,
        language: str | None = None,
    ) -> TranscriptionResult:
        """Transcribe an audio file to text.

        Parameters
        ----------
        audio_path:
            Path to the audio file on disk.
        language:
            Optional ISO 639-1 language code.  Auto-detected when ``None``.

        Raises
        ------
        study_assistant.utils.errors.TranscriptionError
            If the backend fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the provider is ready to accept transcription requests."""

    @abstractmethod
    def supported_formats(self) -> list[str]:
        """Return list of supported audio file extensions (e.g. ['.wav', '.mp3'])."""
