"""Reusable exponential-backoff policy for transient provider failures.

Embedding backends answer with 429 (rate limit) or 503 (model still loading)
under load.  Providers raise :class:`RateLimitError` or
:class:`ProviderUnavailableError` from a single attempt and let
:meth:`BackoffPolicy.run` decide whether to sleep and try again.  After the
last attempt the final transient error is re-raised unchanged so the caller
can wrap it in its own error type.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import structlog

from study_assistant.utils.errors import ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry schedule: ``base_delay * multiplier ** (attempt - 1)`` between attempts."""

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (RateLimitError, ProviderUnavailableError)

    def delay_for(self, attempt: int) -> float:
        """Return the sleep before retrying after failed *attempt* (1-based)."""
        return self.base_delay * (self.multiplier ** (attempt - 1))

    async def run(self, operation: Callable[[], Awaitable[_T]], label: str = "operation") -> _T:
        """Await ``operation()`` until it succeeds or attempts run out.

        Parameters
        ----------
        operation:
            Zero-argument callable returning a fresh awaitable per attempt.
        label:
            Name used in retry log events.

        Raises
        ------
        BaseException
            The last retryable exception once ``max_attempts`` is reached,
            or any non-retryable exception immediately.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except self.retry_on as exc:
                if attempt >= self.max_attempts:
                    logger.warning(
                        "retry_exhausted",
                        operation=label,
                        attempts=attempt,
                        error=str(exc),
                    )
                    raise
                delay = self.delay_for(attempt)
                logger.info(
                    "retrying_transient_failure",
                    operation=label,
                    attempt=attempt,
                    delay=delay,
                    error=str(exc),
                )
                await asyncio.sleep(delay)
        # max_attempts < 1 never enters the loop.
        raise ValueError(f"BackoffPolicy.max_attempts must be >= 1, got {self.max_attempts}")
