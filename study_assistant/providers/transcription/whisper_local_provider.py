"""Local Whisper transcription provider using faster-whisper (CTranslate2).

Runs entirely locally with no API costs.  Approximate model requirements:

    tiny   — ~75 MB RAM, fast, lower accuracy
    base   — ~150 MB RAM, good balance (default)
    small  — ~500 MB RAM, better accuracy
    medium — ~1.5 GB RAM
    large-v3 — ~3 GB RAM, best accuracy

faster-whisper is installed through the ``local`` extra; the import is
deferred to first use so the hosted configuration never loads it.
"""

from __future__ import annotations

import asyncio

import structlog

from study_assistant.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from study_assistant.utils.errors import TranscriptionError

logger = structlog.get_logger(logger_name=__name__)


class WhisperLocalProvider(ITranscriptionProvider):
    """Transcription via faster-whisper running locally on CPU/GPU.

    Parameters
    ----------
    model_size:
        Whisper model variant: tiny, base, small, medium, large-v2, large-v3.
    device:
        Compute device: "cpu" or "cuda".
    compute_type:
        CTranslate2 compute type; "int8" keeps CPU memory low.
    """

    def __init__(
        self,
        model_size: str = "base",
        device: str = "cpu",
        compute_type: str = "int8",
    ) -> None:
        self._model_size = model_size
        self._device = device
        self._compute_type = compute_type
        self._model = None

    def _ensure_model(self) -> None:
        """Lazy-load the model on first use to avoid startup RAM overhead."""
        if self._model is not None:
            return

        from faster_whisper import WhisperModel

        self._model = WhisperModel(
            self._model_size,
            device=self._device,
            compute_type=self._compute_type,
        )
        logger.info("whisper_model_loaded", model=self._model_size, device=self._device)

    async def transcribe(
        self,
        audio_path: str,
        language: str | None = None,
    ) -> TranscriptionResult:
        try:
            return await asyncio.to_thread(self._transcribe_sync, audio_path, language)
        except (ImportError, RuntimeError, OSError, ValueError) as exc:
            raise TranscriptionError(
                f"Local transcription failed: {exc}", provider_name=self.get_provider_name()
            ) from exc

    def _transcribe_sync(self, audio_path: str, language: str | None) -> TranscriptionResult:
        self._ensure_model()

        kwargs: dict = {"beam_size": 5}
        if language:
            kwargs["language"] = language

        segments_iter, info = self._model.transcribe(audio_path, **kwargs)

        segments = []
        for seg in segments_iter:
            segments.append({"start": seg.start, "end": seg.end, "text": seg.text.strip()})
        full_text = " ".join(s["text"] for s in segments)

        logger.info(
            "whisper_local_transcription_complete",
            duration=info.duration,
            language=info.language,
            segments=len(segments),
        )
        return TranscriptionResult(
            text=full_text,
            language=info.language or "en",
            duration_seconds=info.duration,
            segments=segments,
        )

    def get_provider_name(self) -> str:
        return f"whisper_local ({self._model_size})"

    def is_available(self) -> bool:
        """Check if faster-whisper is importable."""
        try:
            import faster_whisper  # noqa: F401
            return True
        except ImportError:
            return False

    def supported_formats(self) -> list[str]:
        return [".wav", ".mp3", ".flac", ".m4a", ".ogg", ".webm"]
