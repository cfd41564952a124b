"""Video extractor driving the ffmpeg CLI.

Two ffmpeg passes per file:

    1. audio  — mono 16 kHz PCM WAV, the format Whisper works best with
    2. frames — one JPEG every ``frame_interval`` seconds (``fps=1/N``)

Frame *i* (0-based, in ffmpeg's output order) is tagged with timestamp
``i * frame_interval``.  A missing ffmpeg binary, a non-zero exit or a
timeout aborts the file with :class:`ExtractionError`.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import structlog

from study_assistant.interfaces.extractor import IExtractor
from study_assistant.models.document import AudioAsset, ExtractionResult, ImageAsset, MediaKind
from study_assistant.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class VideoExtractor(IExtractor):
    """Splits a video into an audio track and periodic frames."""

    media_kind = MediaKind.VIDEO

    def __init__(
        self,
        frame_interval: int = 30,
        timeout: float = 120.0,
        ffmpeg_binary: str = "ffmpeg",
    ) -> None:
        self._frame_interval = frame_interval
        self._timeout = timeout
        self._ffmpeg_binary = ffmpeg_binary

    async def extract(self, file_path: Path, workspace: Path) -> ExtractionResult:
        file_path = Path(file_path)
        workspace = Path(workspace)
        ffmpeg = shutil.which(self._ffmpeg_binary)
        if not ffmpeg:
            raise ExtractionError(
                "ffmpeg not installed. Install via: brew install ffmpeg (macOS) "
                "or apt install ffmpeg (Linux)",
                provider_name="ffmpeg",
            )
        if not file_path.is_file():
            raise ExtractionError(f"Video not found: {file_path}", provider_name="ffmpeg")

        audio_path = workspace / "audio.wav"
        await self._run(
            [ffmpeg, "-y", "-i", str(file_path),
             "-vn", "-acodec", "pcm_s16le", "-ar", "16000", "-ac", "1",
             str(audio_path)],
            step="audio",
        )

        frames_dir = workspace / "frames"
        frames_dir.mkdir(exist_ok=True)
        await self._run(
            [ffmpeg, "-y", "-i", str(file_path),
             "-vf", f"fps=1/{self._frame_interval}", "-q:v", "2",
             str(frames_dir / "frame_%04d.jpg")],
            step="frames",
        )

        images = [
            ImageAsset(
                path=str(frame),
                mime="image/jpeg",
                position=index,
                timestamp=float(index * self._frame_interval),
            )
            for index, frame in enumerate(sorted(frames_dir.glob("frame_*.jpg")))
        ]

        logger.info(
            "video_extracted",
            file=file_path.name,
            frames=len(images),
            frame_interval=self._frame_interval,
        )
        return ExtractionResult(
            media_kind=self.media_kind,
            images=images,
            audio=AudioAsset(path=str(audio_path), mime="audio/wav"),
        )

    async def _run(self, command: list[str], step: str) -> None:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ExtractionError(
                f"ffmpeg {step} step timed out after {self._timeout:.0f}s",
                provider_name="ffmpeg",
            ) from exc

        if proc.returncode != 0:
            raise ExtractionError(
                f"ffmpeg {step} step failed: {stderr.decode(errors='replace')[-500:]}",
                provider_name="ffmpeg",
            )
