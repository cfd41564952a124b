"""Abstract base class for media extractors.

An extractor turns one uploaded file into an :class:`ExtractionResult`:
text blocks, image assets written into the run's workspace, and at most one
audio asset.  Parsing itself is delegated to the format libraries (PyMuPDF,
python-pptx, python-docx) or to ffmpeg.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from study_assistant.models.document import ExtractionResult, MediaKind


# Concrete implementations: PdfExtractor, SlideDeckExtractor,
# WordDocumentExtractor, VideoExtractor, AudioExtractor
# Located in: study_assistant/services/ingestion/extractors/
class IExtractor(ABC):
    """Contract for per-media-kind content extraction."""

    media_kind: MediaKind

    @abstractmethod
    async def extract(self, file_path: Path, workspace: Path) -> ExtractionResult:
        """Extract content units from *file_path*.

        Parameters
        ----------
        file_path:
            The uploaded file.
        workspace:
            Per-run scratch directory for images and audio tracks.

        Raises
        ------
        study_assistant.utils.errors.ExtractionError
            If the file is corrupt, a required tool is missing, or the
            tool fails or times out.  Nothing from the file is persisted.
        """

    def get_extractor_name(self) -> str:
        return type(self).__name__
