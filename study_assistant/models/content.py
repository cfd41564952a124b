"""Chunk, vector-record, and retrieval models for the RAG layer.

All models are frozen: a chunk is never mutated after it is persisted, and
re-ingestion produces new chunks with the same deterministic ids so the
vector store overwrites instead of duplicating.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from study_assistant.models.document import DocumentAsset, MediaKind

# Sentinels stored in place of a description/transcript when the external
# service failed.  Chunks containing them are flagged ``degraded``.
ANALYSIS_FAILED = "Failed to analyze image"
TRANSCRIPTION_FAILED = "Failed to transcribe audio"

MetadataValue = Union[str, int, float, bool]


class ContentType(str, Enum):  # noqa: UP042  StrEnum requires Python 3.11+
    """What a stored chunk contains."""

    COMBINED = "combined"
    TEXT = "text"
    IMAGE_DESCRIPTION = "image_description"
    TRANSCRIPT = "transcript"


MULTIMEDIA_CONTENT_TYPES: frozenset[ContentType] = frozenset(
    {ContentType.IMAGE_DESCRIPTION, ContentType.TRANSCRIPT}
)


def is_degraded(body: str) -> bool:
    """Return ``True`` if *body* contains a soft-failure sentinel."""
    return ANALYSIS_FAILED in body or TRANSCRIPTION_FAILED in body


class ContentChunk(BaseModel):
    """A bounded, typed slice of a document's extracted content."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(description="Owning document id.")
    chunk_index: int = Field(ge=0, description="Index, unique per (document_id, content_type).")
    content_type: ContentType
    body: str = Field(description="Trimmed, non-empty chunk text.")
    degraded: bool = Field(default=False, description="True when built from a sentinel.")

    @field_validator("body")
    @classmethod
    def _body_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("chunk body must not be empty")
        return value

    @property
    def record_id(self) -> str:
        return make_record_id(self.document_id, self.content_type, self.chunk_index)


def make_record_id(document_id: str, content_type: ContentType, chunk_index: int) -> str:
    """Deterministic vector-store id for a chunk."""
    return f"{document_id}_{content_type.value}_{chunk_index}"


class VectorRecord(BaseModel):
    """One row written to the vector store."""

    model_config = ConfigDict(frozen=True)

    id: str
    document: str
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)
    embedding: list[float] | None = None

    @classmethod
    def from_chunk(cls, chunk: ContentChunk, asset: DocumentAsset) -> VectorRecord:
        """Build the record for *chunk*, flattening asset identity into scalar metadata."""
        return cls(
            id=chunk.record_id,
            document=chunk.body,
            metadata={
                "document_id": asset.document_id,
                "filename": asset.filename,
                "media_kind": asset.media_kind.value,
                "upload_time": asset.upload_time.isoformat(),
                "chunk_index": chunk.chunk_index,
                "content_type": chunk.content_type.value,
                "degraded": chunk.degraded,
            },
        )


class RetrievalResult(BaseModel):
    """A stored record returned by the vector store, with its distance when queried."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    distance: float | None = None

    @property
    def document_id(self) -> str | None:
        return self.metadata.get("document_id")

    @property
    def content_type(self) -> str | None:
        return self.metadata.get("content_type")


class IngestionResult(BaseModel):
    """Summary of one completed ingestion."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    filename: str
    media_kind: MediaKind
    chunks_by_type: dict[str, int] = Field(default_factory=dict)
    images_analyzed: int = 0
    has_transcript: bool = False
    degraded_chunks: int = 0
    processing_time: float = Field(default=0.0, description="Seconds spent ingesting.")

    @property
    def total_chunks(self) -> int:
        return sum(self.chunks_by_type.values())
