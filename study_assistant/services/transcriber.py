"""Speech-to-text for audio uploads and video soundtracks.

Like the visual analyzer, a failed transcription degrades instead of
aborting: the ``TRANSCRIPTION_FAILED`` sentinel is stored in place of the
transcript and the chunk is flagged degraded.
"""

from __future__ import annotations

import structlog

from study_assistant.interfaces.transcription_provider import ITranscriptionProvider
from study_assistant.models.content import TRANSCRIPTION_FAILED
from study_assistant.models.document import AudioAsset
from study_assistant.utils.errors import TranscriptionError

logger = structlog.get_logger(logger_name=__name__)


class Transcriber:
    def __init__(self, provider: ITranscriptionProvider, language: str | None = None) -> None:
        self._provider = provider
        self._language = language

    async def transcribe(self, audio: AudioAsset) -> str:
        """Return the transcript text, or ``TRANSCRIPTION_FAILED`` on any backend error."""
        try:
            result = await self._provider.transcribe(audio.path, language=self._language)
        except (TranscriptionError, OSError) as exc:
            logger.warning(
                "transcription_failed",
                provider=self._provider.get_provider_name(),
                audio=audio.path,
                error=str(exc),
            )
            return TRANSCRIPTION_FAILED

        text = result.text.strip()
        logger.info(
            "audio_transcribed",
            provider=self._provider.get_provider_name(),
            characters=len(text),
            duration=result.duration_seconds,
        )
        return text
