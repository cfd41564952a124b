"""PDF extractor built on PyMuPDF (fitz).

Produces one text block per page (1-based page numbers) and saves every
embedded raster image into the run workspace, tagged with its page.  With
OCR enabled, each saved image is also run through Tesseract so text baked
into diagrams and scanned figures becomes searchable.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import pytesseract
import structlog
from PIL import Image

from study_assistant.interfaces.extractor import IExtractor
from study_assistant.models.document import ExtractionResult, ImageAsset, MediaKind, TextBlock
from study_assistant.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

# Icons, bullets and rules embedded as images carry no study content.
_MIN_IMAGE_SIDE = 32


def image_mime(ext: str) -> str:
    ext = ext.lower().lstrip(".")
    return "image/jpeg" if ext in ("jpg", "jpeg") else f"image/{ext}"


class PdfExtractor(IExtractor):
    """Extracts page text and embedded images from PDFs."""

    media_kind = MediaKind.TEXT_DOCUMENT

    def __init__(self, ocr_enabled: bool = False) -> None:
        self._ocr_enabled = ocr_enabled

    async def extract(self, file_path: Path, workspace: Path) -> ExtractionResult:
        return await asyncio.to_thread(self._extract_sync, Path(file_path), Path(workspace))

    def _extract_sync(self, file_path: Path, workspace: Path) -> ExtractionResult:
        try:
            doc = fitz.open(str(file_path))
        except (RuntimeError, ValueError, OSError) as exc:
            raise ExtractionError(
                f"Cannot open PDF {file_path.name}: {exc}", provider_name="pymupdf"
            ) from exc

        text_blocks: list[TextBlock] = []
        images: list[ImageAsset] = []
        try:
            for page_index in range(len(doc)):
                page = doc[page_index]
                page_number = page_index + 1
                text = page.get_text("text").strip()
                if text:
                    text_blocks.append(TextBlock(body=text, position=page_number))
                images.extend(self._save_page_images(doc, page, page_number, workspace))
        except (RuntimeError, ValueError, OSError) as exc:
            raise ExtractionError(
                f"Failed reading PDF {file_path.name}: {exc}", provider_name="pymupdf"
            ) from exc
        finally:
            doc.close()

        logger.info(
            "pdf_extracted",
            file=file_path.name,
            pages_with_text=len(text_blocks),
            images=len(images),
            ocr=self._ocr_enabled,
        )
        return ExtractionResult(
            media_kind=self.media_kind,
            text_blocks=text_blocks,
            images=images,
        )

    def _save_page_images(
        self,
        doc: fitz.Document,
        page: fitz.Page,
        page_number: int,
        workspace: Path,
    ) -> list[ImageAsset]:
        assets: list[ImageAsset] = []
        for image_index, image_info in enumerate(page.get_images(full=True), start=1):
            xref = image_info[0]
            extracted = doc.extract_image(xref)
            if not extracted or not extracted.get("image"):
                continue
            if min(extracted.get("width", 0), extracted.get("height", 0)) < _MIN_IMAGE_SIDE:
                continue

            ext = extracted.get("ext", "png")
            path = workspace / f"page{page_number:04d}_img{image_index:02d}.{ext}"
            path.write_bytes(extracted["image"])
            assets.append(
                ImageAsset(
                    path=str(path),
                    mime=image_mime(ext),
                    position=page_number,
                    ocr_text=self._ocr(path) if self._ocr_enabled else "",
                )
            )
        return assets

    @staticmethod
    def _ocr(path: Path) -> str:
        """Best-effort OCR; an unreadable image or missing binary yields ``""``."""
        try:
            with Image.open(path) as img:
                return pytesseract.image_to_string(img.convert("RGB")).strip()
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as exc:
            logger.warning("pdf_image_ocr_failed", image=path.name, error=str(exc))
            return ""
