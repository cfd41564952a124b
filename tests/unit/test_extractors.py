"""Unit tests for the per-media-kind extractors and the extractor registry."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

import pytest
from docx import Document
from docx.shared import Inches as DocxInches
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.util import Inches

from study_assistant.models.document import MediaKind
from study_assistant.services.ingestion.extractors import (
    AudioExtractor,
    ExtractorRegistry,
    PdfExtractor,
    SlideDeckExtractor,
    VideoExtractor,
    WordDocumentExtractor,
)
from study_assistant.services.ingestion.extractors.pdf_extractor import image_mime
from study_assistant.utils.errors import ConfigurationError, ExtractionError

_VIDEO_MODULE = "study_assistant.services.ingestion.extractors.video_extractor"
_SLIDE_MODULE = "study_assistant.services.ingestion.extractors.slide_extractor"


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture()
def png_file(tmp_path: Path, png_bytes: bytes) -> Path:
    path = tmp_path / "chart.png"
    path.write_bytes(png_bytes)
    return path


def test_image_mime() -> None:
    assert image_mime("jpg") == "image/jpeg"
    assert image_mime(".JPEG") == "image/jpeg"
    assert image_mime("png") == "image/png"


# ======================================================================
# PDF
# ======================================================================


class TestPdfExtractor:
    @pytest.mark.asyncio
    async def test_pages_and_images_are_tagged_by_page(
        self, two_page_pdf: Path, workspace: Path
    ) -> None:
        result = await PdfExtractor().extract(two_page_pdf, workspace)

        assert result.media_kind is MediaKind.TEXT_DOCUMENT
        assert [b.position for b in result.text_blocks] == [1, 2]
        assert "Cells are the basic unit of life." in result.text_blocks[0].body
        assert len(result.images) == 1
        image = result.images[0]
        assert image.position == 2
        assert Path(image.path).is_file()
        assert Path(image.path).parent == workspace
        assert image.ocr_text == ""

    @pytest.mark.asyncio
    async def test_ocr_text_attached_when_enabled(
        self, two_page_pdf: Path, workspace: Path
    ) -> None:
        with patch(
            "study_assistant.services.ingestion.extractors.pdf_extractor.pytesseract.image_to_string",
            return_value="  Light intensity  \n",
        ):
            result = await PdfExtractor(ocr_enabled=True).extract(two_page_pdf, workspace)
        assert result.images[0].ocr_text == "Light intensity"

    @pytest.mark.asyncio
    async def test_corrupt_pdf_raises(self, tmp_path: Path, workspace: Path) -> None:
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"this is not a pdf")
        with pytest.raises(ExtractionError):
            await PdfExtractor().extract(bad, workspace)

    @pytest.mark.asyncio
    async def test_unwritable_workspace_raises(self, two_page_pdf: Path, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError, match="Failed reading PDF"):
            await PdfExtractor().extract(two_page_pdf, tmp_path / "missing")


# ======================================================================
# Slide deck
# ======================================================================


class TestSlideDeckExtractor:
    @pytest.fixture()
    def deck(self, tmp_path: Path, png_file: Path) -> Path:
        prs = Presentation()
        slide = prs.slides.add_slide(prs.slide_layouts[5])  # title only
        slide.shapes.title.text = "Cell Biology"
        slide.shapes.add_picture(str(png_file), Inches(1), Inches(2))
        slide.notes_slide.notes_text_frame.text = "Mention mitochondria"

        blank = prs.slides.add_slide(prs.slide_layouts[6])
        box = blank.shapes.add_textbox(Inches(1), Inches(1), Inches(4), Inches(1))
        box.text_frame.text = "Summary"

        path = tmp_path / "deck.pptx"
        prs.save(str(path))
        return path

    @pytest.mark.asyncio
    async def test_slide_text_notes_and_pictures(self, deck: Path, workspace: Path) -> None:
        result = await SlideDeckExtractor().extract(deck, workspace)

        assert result.media_kind is MediaKind.SLIDE_DECK
        assert [b.position for b in result.text_blocks] == [1, 2]
        assert "Cell Biology" in result.text_blocks[0].body
        assert "Notes: Mention mitochondria" in result.text_blocks[0].body
        assert result.text_blocks[1].body == "Summary"

        assert len(result.images) == 1
        assert result.images[0].position == 1
        assert result.images[0].mime == "image/png"
        assert Path(result.images[0].path).is_file()

    @pytest.mark.asyncio
    async def test_non_ooxml_file_raises(self, tmp_path: Path, workspace: Path) -> None:
        legacy = tmp_path / "old.ppt"
        legacy.write_bytes(b"\xd0\xcf\x11\xe0 legacy binary")
        with pytest.raises(ExtractionError):
            await SlideDeckExtractor().extract(legacy, workspace)

    @pytest.mark.asyncio
    async def test_table_rows_are_read(self, tmp_path: Path, workspace: Path) -> None:
        prs = Presentation()
        slide = prs.slides.add_slide(prs.slide_layouts[6])
        table = slide.shapes.add_table(2, 2, Inches(1), Inches(1), Inches(4), Inches(1)).table
        rows = [("Organelle", "Role"), ("Ribosome", "Protein synthesis")]
        for row, (left, right) in enumerate(rows):
            table.cell(row, 0).text = left
            table.cell(row, 1).text = right
        path = tmp_path / "table.pptx"
        prs.save(str(path))

        result = await SlideDeckExtractor().extract(path, workspace)

        assert result.text_blocks[0].body == "Organelle | Role\nRibosome | Protein synthesis"

    @pytest.mark.asyncio
    async def test_linked_picture_and_missing_notes_frame_are_tolerated(
        self, tmp_path: Path, workspace: Path
    ) -> None:
        linked = MagicMock(
            shape_type=MSO_SHAPE_TYPE.PICTURE, has_text_frame=False, has_table=False
        )
        type(linked).image = PropertyMock(side_effect=ValueError("no embedded image"))
        caption = MagicMock(
            shape_type=MSO_SHAPE_TYPE.TEXT_BOX, has_text_frame=True, has_table=False
        )
        caption.text_frame.text = "Linked diagram below"
        slide = MagicMock(shapes=[linked, caption], has_notes_slide=True)
        slide.notes_slide.notes_text_frame = None

        with patch(f"{_SLIDE_MODULE}.Presentation", return_value=MagicMock(slides=[slide])):
            result = await SlideDeckExtractor().extract(tmp_path / "linked.pptx", workspace)

        assert [b.body for b in result.text_blocks] == ["Linked diagram below"]
        assert result.images == []

    @pytest.mark.asyncio
    async def test_unwritable_workspace_raises(self, deck: Path, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError, match="slide 1"):
            await SlideDeckExtractor().extract(deck, tmp_path / "missing")


# ======================================================================
# Word document
# ======================================================================


class TestWordDocumentExtractor:
    @pytest.fixture()
    def docx_file(self, tmp_path: Path, png_file: Path) -> Path:
        doc = Document()
        doc.add_paragraph("Introduction to genetics")
        doc.add_picture(str(png_file), width=DocxInches(1))
        doc.add_paragraph("DNA carries information")
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Gene"
        table.rows[0].cells[1].text = "Allele"
        path = tmp_path / "genetics.docx"
        doc.save(str(path))
        return path

    @pytest.mark.asyncio
    async def test_text_stream_and_images(self, docx_file: Path, workspace: Path) -> None:
        result = await WordDocumentExtractor().extract(docx_file, workspace)

        assert result.media_kind is MediaKind.WORD_DOCUMENT
        assert len(result.text_blocks) == 1
        assert result.text_blocks[0].body == (
            "Introduction to genetics\nDNA carries information\nGene | Allele"
        )
        assert len(result.images) == 1
        assert result.images[0].position == 1
        assert Path(result.images[0].path).name == "word_img001.png"

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path: Path, workspace: Path) -> None:
        bad = tmp_path / "bad.docx"
        bad.write_bytes(b"garbage")
        with pytest.raises(ExtractionError):
            await WordDocumentExtractor().extract(bad, workspace)


# ======================================================================
# Video (ffmpeg mocked)
# ======================================================================


def _process(returncode: int = 0, stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(b"", stderr))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


class TestVideoExtractor:
    @pytest.fixture()
    def video(self, tmp_path: Path) -> Path:
        path = tmp_path / "lecture.mp4"
        path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
        return path

    @pytest.mark.asyncio
    async def test_audio_track_and_timestamped_frames(
        self, video: Path, workspace: Path
    ) -> None:
        commands: list[tuple[str, ...]] = []

        async def fake_exec(*command: str, **kwargs):  # noqa: ANN003, ANN202
            commands.append(command)
            output = Path(command[-1])
            if output.name == "frame_%04d.jpg":
                for i in range(1, 4):
                    (output.parent / f"frame_{i:04d}.jpg").write_bytes(b"jpg")
            return _process()

        with patch(f"{_VIDEO_MODULE}.shutil.which", return_value="/usr/bin/ffmpeg"), patch(
            f"{_VIDEO_MODULE}.asyncio.create_subprocess_exec", side_effect=fake_exec
        ):
            result = await VideoExtractor(frame_interval=30).extract(video, workspace)

        assert len(commands) == 2
        audio_cmd, frame_cmd = commands
        assert "-vn" in audio_cmd and "16000" in audio_cmd and audio_cmd[-1].endswith("audio.wav")
        assert "fps=1/30" in frame_cmd

        assert result.audio is not None
        assert result.audio.path.endswith("audio.wav")
        assert [img.timestamp for img in result.images] == [0.0, 30.0, 60.0]
        assert [img.position for img in result.images] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_missing_ffmpeg_raises(self, video: Path, workspace: Path) -> None:
        with patch(f"{_VIDEO_MODULE}.shutil.which", return_value=None):
            with pytest.raises(ExtractionError, match="ffmpeg not installed"):
                await VideoExtractor().extract(video, workspace)

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self, video: Path, workspace: Path) -> None:
        with patch(f"{_VIDEO_MODULE}.shutil.which", return_value="/usr/bin/ffmpeg"), patch(
            f"{_VIDEO_MODULE}.asyncio.create_subprocess_exec",
            AsyncMock(return_value=_process(1, b"Output file does not contain any stream")),
        ):
            with pytest.raises(ExtractionError, match="audio step failed"):
                await VideoExtractor().extract(video, workspace)


# ======================================================================
# Audio
# ======================================================================


class TestAudioExtractor:
    @pytest.mark.asyncio
    async def test_file_is_the_audio_asset(self, tmp_path: Path, workspace: Path) -> None:
        path = tmp_path / "talk.mp3"
        path.write_bytes(b"ID3 audio")
        result = await AudioExtractor().extract(path, workspace)
        assert result.audio is not None
        assert result.audio.path == str(path)
        assert result.audio.mime == "audio/mpeg"
        assert result.text_blocks == [] and result.images == []

    @pytest.mark.asyncio
    async def test_empty_file_raises(self, tmp_path: Path, workspace: Path) -> None:
        path = tmp_path / "empty.wav"
        path.write_bytes(b"")
        with pytest.raises(ExtractionError):
            await AudioExtractor().extract(path, workspace)


# ======================================================================
# Registry
# ======================================================================


class TestExtractorRegistry:
    def test_default_covers_every_media_kind(self) -> None:
        registry = ExtractorRegistry.default()
        for kind in MediaKind:
            assert registry.get(kind).media_kind is kind

    def test_missing_kind_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            ExtractorRegistry({}).get(MediaKind.VIDEO)

    @pytest.mark.asyncio
    async def test_extract_dispatches_by_kind(self, tmp_path: Path, workspace: Path) -> None:
        path = tmp_path / "memo.wav"
        path.write_bytes(b"RIFF")
        result = await ExtractorRegistry.default().extract(path, MediaKind.AUDIO, workspace)
        assert result.media_kind is MediaKind.AUDIO
        assert result.audio.mime == "audio/wav"
