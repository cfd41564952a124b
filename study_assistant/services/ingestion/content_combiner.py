"""Joins extracted text with image descriptions and transcripts into typed chunks.

Combined sections are built per position so a description always lands
next to the text of the page/slide it came from:

    text_document  "Page {n}: {text}"  + "\\n\\n[IMAGE DESCRIPTION]: ..."
                                       + "\\n\\n[TEXT FROM IMAGE]: ..." (OCR)
    slide_deck     "Slide {n}: {text}" + "\\n\\n[VISUAL CONTENT]: ..."
    word_document  "{text}"            + "\\n\\n[IMAGE DESCRIPTION]: ..."
    video          "TRANSCRIPT: {t}"   + "\\n\\n[VISUAL AT {s}s]: ..."

Alongside the combined chunks, the raw text, every image description and
the transcript are stored as their own content types so retrieval can
include or exclude multimedia-derived content.  Chunk indexes are assigned
per content type after empty windows are dropped.
"""

from __future__ import annotations

from collections import defaultdict

from study_assistant.models.content import ContentChunk, ContentType, is_degraded
from study_assistant.models.document import DocumentAsset, ExtractionResult, ImageAsset, MediaKind
from study_assistant.services.ingestion.chunker import TextChunker

_TEXT_KINDS = (MediaKind.TEXT_DOCUMENT, MediaKind.SLIDE_DECK, MediaKind.WORD_DOCUMENT)


def format_seconds(seconds: float) -> str:
    return str(int(seconds)) if float(seconds).is_integer() else f"{seconds:g}"


class ContentCombiner:
    def __init__(self, chunker: TextChunker) -> None:
        self._chunker = chunker

    def combine(
        self,
        asset: DocumentAsset,
        extraction: ExtractionResult,
        descriptions: list[tuple[ImageAsset, str]],
        transcript: str | None = None,
    ) -> list[ContentChunk]:
        """Build every chunk to store for *asset*.

        Parameters
        ----------
        descriptions:
            ``(image, description)`` pairs, already in position order.
        transcript:
            Transcript of the audio asset, if the extraction had one.
        """
        kind = extraction.media_kind
        chunks: list[ContentChunk] = []

        if kind is not MediaKind.AUDIO:
            sections = self._combined_sections(kind, extraction, descriptions, transcript)
            windows = [w for section in sections for w in self._chunker.chunk(section)]
            chunks.extend(self._typed(asset, ContentType.COMBINED, windows))

        if kind in _TEXT_KINDS:
            chunks.extend(
                self._typed(asset, ContentType.TEXT, self._chunker.chunk(extraction.full_text))
            )

        description_windows = [
            w for _, description in descriptions for w in self._chunker.chunk(description)
        ]
        chunks.extend(self._typed(asset, ContentType.IMAGE_DESCRIPTION, description_windows))

        if transcript:
            chunks.extend(
                self._typed(asset, ContentType.TRANSCRIPT, self._chunker.chunk(transcript))
            )
        return chunks

    # ------------------------------------------------------------------
    # Section builders
    # ------------------------------------------------------------------

    def _combined_sections(
        self,
        kind: MediaKind,
        extraction: ExtractionResult,
        descriptions: list[tuple[ImageAsset, str]],
        transcript: str | None,
    ) -> list[str]:
        if kind is MediaKind.TEXT_DOCUMENT:
            return _positional_sections(
                extraction, descriptions, label="Page", marker="[IMAGE DESCRIPTION]", with_ocr=True
            )
        if kind is MediaKind.SLIDE_DECK:
            return _positional_sections(
                extraction, descriptions, label="Slide", marker="[VISUAL CONTENT]", with_ocr=False
            )
        if kind is MediaKind.WORD_DOCUMENT:
            section = extraction.full_text
            for _, description in descriptions:
                section += f"\n\n[IMAGE DESCRIPTION]: {description}"
            return [section]
        if kind is MediaKind.VIDEO:
            section = f"TRANSCRIPT: {transcript or ''}"
            for image, description in descriptions:
                section += f"\n\n[VISUAL AT {format_seconds(image.timestamp or 0.0)}s]: {description}"
            return [section]
        return []

    @staticmethod
    def _typed(
        asset: DocumentAsset,
        content_type: ContentType,
        windows: list[str],
    ) -> list[ContentChunk]:
        bodies = [w.strip() for w in windows if w.strip()]
        return [
            ContentChunk(
                document_id=asset.document_id,
                chunk_index=index,
                content_type=content_type,
                body=body,
                degraded=is_degraded(body),
            )
            for index, body in enumerate(bodies)
        ]


def _positional_sections(
    extraction: ExtractionResult,
    descriptions: list[tuple[ImageAsset, str]],
    label: str,
    marker: str,
    with_ocr: bool,
) -> list[str]:
    """One section per page/slide, covering positions that have only images too."""
    text_by_position: dict[int, list[str]] = defaultdict(list)
    for block in extraction.text_blocks:
        if block.body.strip():
            text_by_position[block.position].append(block.body.strip())

    images_by_position: dict[int, list[tuple[ImageAsset, str]]] = defaultdict(list)
    for image, description in descriptions:
        images_by_position[image.position].append((image, description))

    sections: list[str] = []
    for position in sorted(set(text_by_position) | set(images_by_position)):
        section = f"{label} {position}: " + "\n".join(text_by_position.get(position, []))
        for image, description in images_by_position.get(position, []):
            section += f"\n\n{marker}: {description}"
            if with_ocr and image.ocr_text:
                section += f"\n\n[TEXT FROM IMAGE]: {image.ocr_text}"
        sections.append(section.strip())
    return sections
