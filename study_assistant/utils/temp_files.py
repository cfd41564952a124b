"""Scratch-space management for ingestion runs.

Every ingestion gets its own directory under the configured temp root
(extracted page images, video frames, the WAV track).  The directory is
removed when the run finishes; :func:`sweep_stale_files` is the janitor that
removes anything a crashed run left behind once it is older than the
configured age (one hour by default).
"""

from __future__ import annotations

import shutil
import time
from pathlib import Path

import structlog

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_AGE_SECONDS = 3600


class IngestionWorkspace:
    """Context manager owning ``<root>/<run_id>/`` for the duration of one ingestion."""

    def __init__(self, root: str | Path, run_id: str) -> None:
        self._root = Path(root)
        self._path = self._root / run_id

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> IngestionWorkspace:
        self._path.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        shutil.rmtree(self._path, ignore_errors=True)


def sweep_stale_files(
    root: str | Path,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: float | None = None,
) -> int:
    """Delete files under *root* whose modification time is older than *max_age_seconds*.

    Empty directories left behind are removed too (the root itself is kept).

    Returns
    -------
    int
        Number of files deleted.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        return 0

    cutoff = (now if now is not None else time.time()) - max_age_seconds
    deleted = 0

    for path in sorted(root_path.rglob("*"), reverse=True):
        try:
            if path.is_file() and path.stat().st_mtime < cutoff:
                path.unlink()
                deleted += 1
            elif (
                path.is_dir()
                and path.stat().st_mtime < cutoff
                and not any(path.iterdir())
            ):
                path.rmdir()
        except FileNotFoundError:
            # Another sweep or the owning run removed it first.
            continue

    if deleted:
        logger.info("temp_files_swept", root=str(root_path), deleted=deleted)
    return deleted
