"""Word-document extractor built on python-docx.

The paragraph text becomes a single text stream (one block); embedded
images are saved in document order by walking the body for ``a:blip``
references, which ``part.rels`` alone would not preserve.  Legacy binary
``.doc`` files are not OOXML packages and fail with :class:`ExtractionError`.
"""

from __future__ import annotations

import asyncio
import zipfile
from pathlib import Path

import structlog
from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn

from study_assistant.interfaces.extractor import IExtractor
from study_assistant.models.document import ExtractionResult, ImageAsset, MediaKind, TextBlock
from study_assistant.services.ingestion.extractors.pdf_extractor import image_mime
from study_assistant.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class WordDocumentExtractor(IExtractor):
    """Extracts paragraph text and inline images from .docx files."""

    media_kind = MediaKind.WORD_DOCUMENT

    async def extract(self, file_path: Path, workspace: Path) -> ExtractionResult:
        return await asyncio.to_thread(self._extract_sync, Path(file_path), Path(workspace))

    def _extract_sync(self, file_path: Path, workspace: Path) -> ExtractionResult:
        try:
            doc = Document(str(file_path))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
            raise ExtractionError(
                f"Cannot open word document {file_path.name}: {exc}",
                provider_name="python-docx",
            ) from exc

        paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    paragraphs.append(" | ".join(cells))

        text_blocks = [TextBlock(body="\n".join(paragraphs), position=0)] if paragraphs else []

        images: list[ImageAsset] = []
        seen: set[str] = set()
        for blip in doc.element.body.iter(qn("a:blip")):
            rel_id = blip.get(qn("r:embed"))
            if not rel_id or rel_id in seen or rel_id not in doc.part.related_parts:
                continue
            seen.add(rel_id)
            part = doc.part.related_parts[rel_id]
            ext = part.partname.ext or "png"
            order = len(images) + 1
            path = workspace / f"word_img{order:03d}.{ext}"
            path.write_bytes(part.blob)
            images.append(ImageAsset(path=str(path), mime=image_mime(ext), position=order))

        logger.info(
            "word_document_extracted",
            file=file_path.name,
            paragraphs=len(paragraphs),
            images=len(images),
        )
        return ExtractionResult(media_kind=self.media_kind, text_blocks=text_blocks, images=images)
