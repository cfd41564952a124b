"""Slide-deck extractor built on python-pptx.

One text block per slide (1-based slide numbers) holding its text frames,
table rows (cells joined with " | ") and speaker notes, plus every embedded
picture saved to the workspace and tagged with the slide it sits on, so the
combiner can attach each description to the right slide.  Linked pictures
have no bytes in the package and are skipped.  Legacy binary
``.ppt`` files are not OOXML packages; python-pptx rejects them and the
upload fails with :class:`ExtractionError`.
"""

from __future__ import annotations

import asyncio
import zipfile
from pathlib import Path

import structlog
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.exc import PackageNotFoundError

from study_assistant.interfaces.extractor import IExtractor
from study_assistant.models.document import ExtractionResult, ImageAsset, MediaKind, TextBlock
from study_assistant.services.ingestion.extractors.pdf_extractor import image_mime
from study_assistant.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class SlideDeckExtractor(IExtractor):
    """Extracts per-slide text and pictures from PowerPoint decks."""

    media_kind = MediaKind.SLIDE_DECK

    async def extract(self, file_path: Path, workspace: Path) -> ExtractionResult:
        return await asyncio.to_thread(self._extract_sync, Path(file_path), Path(workspace))

    def _extract_sync(self, file_path: Path, workspace: Path) -> ExtractionResult:
        try:
            presentation = Presentation(str(file_path))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
            raise ExtractionError(
                f"Cannot open slide deck {file_path.name}: {exc}", provider_name="python-pptx"
            ) from exc

        text_blocks: list[TextBlock] = []
        images: list[ImageAsset] = []
        for slide_number, slide in enumerate(presentation.slides, start=1):
            try:
                texts = _slide_texts(slide)
                images.extend(_save_pictures(slide, slide_number, workspace))
            except (KeyError, OSError, ValueError) as exc:
                raise ExtractionError(
                    f"Cannot read slide {slide_number} of {file_path.name}: {exc}",
                    provider_name="python-pptx",
                ) from exc
            if texts:
                text_blocks.append(TextBlock(body="\n".join(texts), position=slide_number))

        logger.info(
            "slide_deck_extracted",
            file=file_path.name,
            slides=len(presentation.slides),
            images=len(images),
        )
        return ExtractionResult(media_kind=self.media_kind, text_blocks=text_blocks, images=images)


def _iter_shapes(shapes):  # noqa: ANN001, ANN202
    """Yield shapes depth-first, descending into groups."""
    for shape in shapes:
        if shape.shape_type == MSO_SHAPE_TYPE.GROUP:
            yield from _iter_shapes(shape.shapes)
        else:
            yield shape


def _slide_texts(slide) -> list[str]:  # noqa: ANN001
    texts: list[str] = []
    for shape in _iter_shapes(slide.shapes):
        if shape.has_text_frame and shape.text_frame.text.strip():
            texts.append(shape.text_frame.text.strip())
        if shape.has_table:
            for row in shape.table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    texts.append(" | ".join(cells))
    if slide.has_notes_slide:
        notes_frame = slide.notes_slide.notes_text_frame
        notes = notes_frame.text.strip() if notes_frame is not None else ""
        if notes:
            texts.append(f"Notes: {notes}")
    return texts


def _save_pictures(slide, slide_number: int, workspace: Path) -> list[ImageAsset]:  # noqa: ANN001
    images: list[ImageAsset] = []
    picture_index = 0
    for shape in _iter_shapes(slide.shapes):
        if shape.shape_type != MSO_SHAPE_TYPE.PICTURE:
            continue
        try:
            image = shape.image
        except ValueError as exc:
            # Linked pictures point outside the package; there are no bytes to describe.
            logger.warning("slide_picture_not_embedded", slide=slide_number, error=str(exc))
            continue
        picture_index += 1
        path = workspace / f"slide{slide_number:04d}_img{picture_index:02d}.{image.ext}"
        path.write_bytes(image.blob)
        images.append(ImageAsset(path=str(path), mime=image_mime(image.ext), position=slide_number))
    return images
