"""OpenAI Whisper API transcription provider.

Cloud transcription for lecture recordings and the audio track pulled out
of uploaded videos.  Max file size is 25 MB per request; the API accepts
mp3, mp4, mpeg, mpga, m4a, wav and webm without local preprocessing.
"""

from __future__ import annotations

from pathlib import Path

import openai
import structlog

from study_assistant.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from study_assistant.utils.errors import TranscriptionError

logger = structlog.get_logger(logger_name=__name__)


def _segment_field(seg, name: str, default):  # noqa: ANN001, ANN202
    if isinstance(seg, dict):
        return seg.get(name, default)
    return getattr(seg, name, default)


class WhisperAPIProvider(ITranscriptionProvider):
    """Transcription via the OpenAI Whisper API.

    Parameters
    ----------
    api_key:
        OpenAI API key.
    base_url:
        Optional OpenAI-compatible endpoint.
    """

    def __init__(self, api_key: str, base_url: str = "", timeout: float = 120.0) -> None:
        self._api_key = api_key
        client_kwargs: dict = {"api_key": api_key or "missing", "timeout": timeout}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    async def transcribe(
        self,
        audio_path: str,
        language: str | None = None,
    ) -> TranscriptionResult:
        if not self.is_available():
            raise TranscriptionError(
                "OPENAI_API_KEY is not set", provider_name=self.get_provider_name()
            )
        kwargs: dict = {"model": "whisper-1", "response_format": "verbose_json"}
        if language:
            kwargs["language"] = language

        try:
            with open(Path(audio_path), "rb") as f:
                response = await self._client.audio.transcriptions.create(file=f, **kwargs)
        except openai.APIError as exc:
            raise TranscriptionError(
                f"Whisper API error: {exc}", provider_name=self.get_provider_name()
            ) from exc

        segments = [
            {
                "start": _segment_field(seg, "start", 0.0),
                "end": _segment_field(seg, "end", 0.0),
                "text": str(_segment_field(seg, "text", "")).strip(),
            }
            for seg in (getattr(response, "segments", None) or [])
        ]
        duration = getattr(response, "duration", 0.0) or 0.0
        detected_language = getattr(response, "language", None) or language or "en"

        logger.info(
            "whisper_api_transcription_complete",
            duration=duration,
            language=detected_language,
            segments=len(segments),
        )
        return TranscriptionResult(
            text=response.text,
            language=detected_language,
            duration_seconds=duration,
            segments=segments,
        )

    def get_provider_name(self) -> str:
        return "whisper_api"

    def is_available(self) -> bool:
        return bool(self._api_key)

    def supported_formats(self) -> list[str]:
        return [".mp3", ".mp4", ".mpeg", ".mpga", ".m4a", ".wav", ".webm"]
