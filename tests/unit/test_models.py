"""Unit tests for document, content and generation models."""

from __future__ import annotations

from datetime import timezone

import pytest
from pydantic import ValidationError

from study_assistant.models import (
    ContentChunk,
    ContentType,
    DocumentAsset,
    ExtractionResult,
    ImageAsset,
    MediaKind,
    QuestionParams,
    RetrievalResult,
    StudyPlanParams,
    SummaryParams,
    TextBlock,
    VectorRecord,
)
from study_assistant.models.content import ANALYSIS_FAILED, is_degraded, make_record_id
from study_assistant.utils.errors import ConfigurationError


class TestMediaKind:
    @pytest.mark.parametrize(
        ("filename", "kind"),
        [
            ("notes.pdf", MediaKind.TEXT_DOCUMENT),
            ("deck.PPTX", MediaKind.SLIDE_DECK),
            ("old.ppt", MediaKind.SLIDE_DECK),
            ("essay.docx", MediaKind.WORD_DOCUMENT),
            ("lecture.mp4", MediaKind.VIDEO),
            ("clip.mov", MediaKind.VIDEO),
            ("talk.avi", MediaKind.VIDEO),
            ("podcast.mp3", MediaKind.AUDIO),
            ("memo.wav", MediaKind.AUDIO),
        ],
    )
    def test_from_filename(self, filename: str, kind: MediaKind) -> None:
        assert MediaKind.from_filename(filename) is kind

    def test_unknown_extension_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            MediaKind.from_filename("archive.zip")

    def test_missing_extension_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            MediaKind.from_filename("README")


class TestDocumentAsset:
    def test_from_filename_assigns_id_and_utc_time(self) -> None:
        asset = DocumentAsset.from_filename("notes.pdf")
        assert asset.document_id.startswith("doc_")
        assert len(asset.document_id) == len("doc_") + 32
        assert asset.upload_time.tzinfo == timezone.utc
        assert asset.media_kind is MediaKind.TEXT_DOCUMENT

    def test_ids_are_unique(self) -> None:
        assert DocumentAsset.from_filename("a.pdf").document_id != DocumentAsset.from_filename(
            "a.pdf"
        ).document_id

    def test_frozen(self) -> None:
        asset = DocumentAsset.from_filename("notes.pdf")
        with pytest.raises(ValidationError):
            asset.filename = "other.pdf"


class TestExtractionResult:
    def test_full_text_is_position_ordered(self) -> None:
        result = ExtractionResult(
            media_kind=MediaKind.TEXT_DOCUMENT,
            text_blocks=[TextBlock(body="second", position=2), TextBlock(body="first", position=1)],
        )
        assert result.full_text == "first\n\nsecond"

    def test_units_contains_every_bucket(self) -> None:
        result = ExtractionResult(
            media_kind=MediaKind.TEXT_DOCUMENT,
            text_blocks=[TextBlock(body="t", position=1)],
            images=[ImageAsset(path="/tmp/x.png", position=1)],
        )
        assert [u.kind for u in result.units] == ["text", "image"]

    def test_image_sort_key_uses_position_then_timestamp(self) -> None:
        a = ImageAsset(path="a", position=1, timestamp=30.0)
        b = ImageAsset(path="b", position=1, timestamp=0.0)
        c = ImageAsset(path="c", position=0)
        assert [i.path for i in sorted([a, b, c], key=lambda i: i.sort_key)] == ["c", "b", "a"]


class TestContentChunk:
    def test_body_is_trimmed(self) -> None:
        chunk = ContentChunk(
            document_id="doc_1", chunk_index=0, content_type=ContentType.TEXT, body="  hi  "
        )
        assert chunk.body == "hi"

    def test_blank_body_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ContentChunk(
                document_id="doc_1", chunk_index=0, content_type=ContentType.TEXT, body="   "
            )

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ContentChunk(
                document_id="doc_1", chunk_index=-1, content_type=ContentType.TEXT, body="x"
            )

    def test_record_id_is_deterministic(self) -> None:
        chunk = ContentChunk(
            document_id="doc_1", chunk_index=3, content_type=ContentType.IMAGE_DESCRIPTION, body="x"
        )
        assert chunk.record_id == "doc_1_image_description_3"
        assert make_record_id("doc_1", ContentType.IMAGE_DESCRIPTION, 3) == chunk.record_id

    def test_is_degraded(self) -> None:
        assert is_degraded(f"Page 2: text\n\n[IMAGE DESCRIPTION]: {ANALYSIS_FAILED}")
        assert not is_degraded("Page 2: text")


class TestVectorRecord:
    def test_from_chunk_flattens_scalar_metadata(self) -> None:
        asset = DocumentAsset.from_filename("slides.pptx")
        chunk = ContentChunk(
            document_id=asset.document_id,
            chunk_index=0,
            content_type=ContentType.COMBINED,
            body="Slide 1: Intro",
            degraded=False,
        )
        record = VectorRecord.from_chunk(chunk, asset)

        assert record.id == f"{asset.document_id}_combined_0"
        assert record.document == "Slide 1: Intro"
        assert record.metadata == {
            "document_id": asset.document_id,
            "filename": "slides.pptx",
            "media_kind": "slide_deck",
            "upload_time": asset.upload_time.isoformat(),
            "chunk_index": 0,
            "content_type": "combined",
            "degraded": False,
        }
        assert all(isinstance(v, (str, int, float, bool)) for v in record.metadata.values())


class TestRetrievalResult:
    def test_metadata_accessors(self) -> None:
        result = RetrievalResult(
            content="x", metadata={"document_id": "doc_1", "content_type": "transcript"}
        )
        assert result.document_id == "doc_1"
        assert result.content_type == "transcript"

    def test_missing_metadata(self) -> None:
        result = RetrievalResult(content="x")
        assert result.document_id is None
        assert result.content_type is None


class TestTaskParams:
    def test_question_defaults(self) -> None:
        params = QuestionParams()
        assert params.count == 5
        assert params.difficulty.value == "medium"

    @pytest.mark.parametrize("count", [0, 21])
    def test_question_count_bounds(self, count: int) -> None:
        with pytest.raises(ValidationError):
            QuestionParams(count=count)

    def test_question_types_must_not_be_empty(self) -> None:
        with pytest.raises(ValidationError):
            QuestionParams(question_types=[])

    @pytest.mark.parametrize("max_length", [99, 5001])
    def test_summary_length_bounds(self, max_length: int) -> None:
        with pytest.raises(ValidationError):
            SummaryParams(max_length=max_length)

    @pytest.mark.parametrize("hours", [0, 169])
    def test_study_hours_bounds(self, hours: int) -> None:
        with pytest.raises(ValidationError):
            StudyPlanParams(study_hours=hours)

    def test_study_plan_defaults(self) -> None:
        params = StudyPlanParams()
        assert params.study_hours == 10
        assert params.level.value == "intermediate"
        assert params.focus_areas == []
