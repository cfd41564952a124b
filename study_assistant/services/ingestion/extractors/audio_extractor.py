"""Audio extractor: the uploaded file itself is the single audio asset."""

from __future__ import annotations

from pathlib import Path

from study_assistant.interfaces.extractor import IExtractor
from study_assistant.models.document import AudioAsset, ExtractionResult, MediaKind
from study_assistant.utils.errors import ExtractionError

_AUDIO_MIME = {".mp3": "audio/mpeg", ".wav": "audio/wav"}


class AudioExtractor(IExtractor):
    media_kind = MediaKind.AUDIO

    async def extract(self, file_path: Path, workspace: Path) -> ExtractionResult:
        file_path = Path(file_path)
        if not file_path.is_file() or file_path.stat().st_size == 0:
            raise ExtractionError(f"Audio file missing or empty: {file_path.name}")
        return ExtractionResult(
            media_kind=self.media_kind,
            audio=AudioAsset(
                path=str(file_path),
                mime=_AUDIO_MIME.get(file_path.suffix.lower(), "audio/mpeg"),
            ),
        )
