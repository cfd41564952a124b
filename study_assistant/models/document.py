"""Document identity and extraction models.

A :class:`DocumentAsset` is created once per upload and referenced by every
chunk stored for it.  Extractors turn the file into transient content units
(:class:`TextBlock`, :class:`ImageAsset`, :class:`AudioAsset`) grouped in an
:class:`ExtractionResult`.  Every unit carries a ``position`` (page number,
slide number, element order or frame index) so results produced
concurrently can be put back in document order.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePath
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from study_assistant.utils.errors import ConfigurationError


class MediaKind(str, Enum):  # noqa: UP042  StrEnum requires Python 3.11+
    """Closed set of supported upload kinds; each has exactly one extractor."""

    TEXT_DOCUMENT = "text_document"
    SLIDE_DECK = "slide_deck"
    WORD_DOCUMENT = "word_document"
    VIDEO = "video"
    AUDIO = "audio"

    @classmethod
    def from_extension(cls, extension: str) -> MediaKind:
        """Map a file extension (with or without the dot) to a media kind.

        Raises
        ------
        ConfigurationError
            If the extension is not a supported upload type.
        """
        key = extension.lower().lstrip(".")
        try:
            return _EXTENSION_MAP[key]
        except KeyError:
            raise ConfigurationError(
                f"Unsupported file type: {extension!r} "
                f"(supported: {', '.join(sorted(_EXTENSION_MAP))})"
            ) from None

    @classmethod
    def from_filename(cls, filename: str) -> MediaKind:
        suffix = PurePath(filename).suffix
        if not suffix:
            raise ConfigurationError(f"File has no extension: {filename!r}")
        return cls.from_extension(suffix)


_EXTENSION_MAP: dict[str, MediaKind] = {
    "pdf": MediaKind.TEXT_DOCUMENT,
    "pptx": MediaKind.SLIDE_DECK,
    "ppt": MediaKind.SLIDE_DECK,
    "docx": MediaKind.WORD_DOCUMENT,
    "doc": MediaKind.WORD_DOCUMENT,
    "mp4": MediaKind.VIDEO,
    "mov": MediaKind.VIDEO,
    "avi": MediaKind.VIDEO,
    "mp3": MediaKind.AUDIO,
    "wav": MediaKind.AUDIO,
}

SUPPORTED_EXTENSIONS: tuple[str, ...] = tuple(sorted(_EXTENSION_MAP))


def new_document_id() -> str:
    """Return a fresh ``doc_<32 hex>`` identifier."""
    return f"doc_{uuid.uuid4().hex}"


class DocumentAsset(BaseModel):
    """Identity of one uploaded file; immutable for its whole lifetime."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(default_factory=new_document_id, description="Stable document id.")
    filename: str = Field(description="Original filename as uploaded.")
    media_kind: MediaKind = Field(description="Kind of media, derived from the extension.")
    upload_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp of the upload.",
    )

    @classmethod
    def from_filename(cls, filename: str) -> DocumentAsset:
        """Create an asset for *filename*, resolving its media kind."""
        return cls(filename=filename, media_kind=MediaKind.from_filename(filename))


# ---------------------------------------------------------------------------
# Content units - transient output of the extractors.
# ---------------------------------------------------------------------------

class TextBlock(BaseModel):
    """Extracted text belonging to one position (page, slide, or whole document)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    body: str
    position: int = Field(default=0, ge=0, description="Page/slide number or element order.")


class ImageAsset(BaseModel):
    """An image written to the run's workspace, tagged with where it came from."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    path: str
    mime: str = "image/png"
    position: int = Field(default=0, ge=0, description="Page/slide number, element or frame order.")
    timestamp: float | None = Field(default=None, description="Seconds into the video, for frames.")
    ocr_text: str = Field(default="", description="Text recognised inside the image, if OCR ran.")

    @property
    def sort_key(self) -> tuple[int, float]:
        return (self.position, self.timestamp or 0.0)


class AudioAsset(BaseModel):
    """An audio track ready for transcription."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["audio"] = "audio"
    path: str
    mime: str = "audio/wav"


ContentUnit = Annotated[Union[TextBlock, ImageAsset, AudioAsset], Field(discriminator="kind")]


class ExtractionResult(BaseModel):
    """Everything an extractor pulled out of one file, in named buckets."""

    model_config = ConfigDict(frozen=True)

    media_kind: MediaKind
    text_blocks: list[TextBlock] = Field(default_factory=list)
    images: list[ImageAsset] = Field(default_factory=list)
    audio: AudioAsset | None = None

    @property
    def units(self) -> list[ContentUnit]:
        """All content units in one list: text, then images, then audio."""
        units: list[ContentUnit] = [*self.text_blocks, *self.images]
        if self.audio is not None:
            units.append(self.audio)
        return units

    @property
    def full_text(self) -> str:
        """Text blocks in position order, joined by blank lines."""
        blocks = sorted(self.text_blocks, key=lambda b: b.position)
        return "\n\n".join(b.body.strip() for b in blocks if b.body.strip())
