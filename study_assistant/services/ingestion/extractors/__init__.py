"""Per-media-kind extractors and the dispatch table that selects them.

# ─── DISPATCH ──────────────────────────────────────────────────────────
#
#   MediaKind.TEXT_DOCUMENT → PdfExtractor          (PyMuPDF, optional OCR)
#   MediaKind.SLIDE_DECK    → SlideDeckExtractor    (python-pptx)
#   MediaKind.WORD_DOCUMENT → WordDocumentExtractor (python-docx)
#   MediaKind.VIDEO         → VideoExtractor        (ffmpeg CLI)
#   MediaKind.AUDIO         → AudioExtractor        (pass-through)
#
# MediaKind is closed, so the table is the only place a new kind is wired.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path

from study_assistant.interfaces.extractor import IExtractor
from study_assistant.models.document import ExtractionResult, MediaKind
from study_assistant.services.ingestion.extractors.audio_extractor import AudioExtractor
from study_assistant.services.ingestion.extractors.pdf_extractor import PdfExtractor
from study_assistant.services.ingestion.extractors.slide_extractor import SlideDeckExtractor
from study_assistant.services.ingestion.extractors.video_extractor import VideoExtractor
from study_assistant.services.ingestion.extractors.word_extractor import WordDocumentExtractor
from study_assistant.utils.errors import ConfigurationError


class ExtractorRegistry:
    """Maps each :class:`MediaKind` to exactly one extractor."""

    def __init__(self, extractors: dict[MediaKind, IExtractor]) -> None:
        self._extractors = dict(extractors)

    @classmethod
    def default(
        cls,
        ocr_enabled: bool = False,
        frame_interval: int = 30,
        subprocess_timeout: float = 120.0,
    ) -> ExtractorRegistry:
        return cls(
            {
                MediaKind.TEXT_DOCUMENT: PdfExtractor(ocr_enabled=ocr_enabled),
                MediaKind.SLIDE_DECK: SlideDeckExtractor(),
                MediaKind.WORD_DOCUMENT: WordDocumentExtractor(),
                MediaKind.VIDEO: VideoExtractor(
                    frame_interval=frame_interval, timeout=subprocess_timeout
                ),
                MediaKind.AUDIO: AudioExtractor(),
            }
        )

    def get(self, media_kind: MediaKind) -> IExtractor:
        try:
            return self._extractors[media_kind]
        except KeyError:
            raise ConfigurationError(f"No extractor registered for {media_kind!s}") from None

    async def extract(
        self,
        file_path: Path,
        media_kind: MediaKind,
        workspace: Path,
    ) -> ExtractionResult:
        return await self.get(media_kind).extract(Path(file_path), Path(workspace))


__all__ = [
    "AudioExtractor",
    "ExtractorRegistry",
    "PdfExtractor",
    "SlideDeckExtractor",
    "VideoExtractor",
    "WordDocumentExtractor",
]
