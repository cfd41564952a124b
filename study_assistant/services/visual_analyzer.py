"""Natural-language descriptions of extracted images via a vision LLM.

A failed description never fails the upload: the analyzer returns the
``ANALYSIS_FAILED`` sentinel, which is stored like any description and
flags the resulting chunks as degraded.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from study_assistant.interfaces.llm_provider import ILLMProvider
from study_assistant.models.content import ANALYSIS_FAILED
from study_assistant.models.document import ImageAsset
from study_assistant.utils.concurrency import throttled_gather
from study_assistant.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

DESCRIBE_PROMPT = (
    "You are helping a student study this material. Describe this image in detail: "
    "what it shows, any text or labels it contains, and, for charts, diagrams or "
    "tables, the data, structure and relationships they convey. Be factual and concise."
)


class VisualAnalyzer:
    """Describes :class:`ImageAsset` files with a vision-capable LLM."""

    def __init__(self, llm: ILLMProvider, prompt: str = DESCRIBE_PROMPT) -> None:
        self._llm = llm
        self._prompt = prompt

    async def describe(self, image: ImageAsset) -> str:
        """Return a description of *image*, or ``ANALYSIS_FAILED`` on any service error."""
        if not self._llm.supports_vision():
            logger.warning("vision_not_supported", provider=self._llm.get_provider_name())
            return ANALYSIS_FAILED

        try:
            image_bytes = await asyncio.to_thread(Path(image.path).read_bytes)
            description = await self._llm.vision_extract(image_bytes, self._prompt)
        except (LLMError, OSError) as exc:
            logger.warning(
                "image_description_failed",
                image=Path(image.path).name,
                position=image.position,
                error=str(exc),
            )
            return ANALYSIS_FAILED

        return description.strip() or ANALYSIS_FAILED

    async def describe_all(
        self,
        images: list[ImageAsset],
        concurrency: int = 4,
    ) -> list[tuple[ImageAsset, str]]:
        """Describe *images* concurrently; results come back in position order.

        At most *concurrency* vision calls are in flight.  Completion order is
        irrelevant: pairs are sorted by the asset's position key.
        """
        if not images:
            return []

        semaphore = asyncio.Semaphore(concurrency)
        results = await throttled_gather(
            [self.describe(image) for image in images],
            semaphore=semaphore,
            return_exceptions=False,
        )
        pairs = list(zip(images, results))
        pairs.sort(key=lambda pair: pair[0].sort_key)

        failed = sum(1 for _, desc in pairs if desc == ANALYSIS_FAILED)
        logger.info("images_described", total=len(pairs), failed=failed)
        return pairs
