"""Fixed-window text chunker.

Splits text into consecutive windows of at most ``max_size`` characters.
The split is deliberately not word- or sentence-aware so chunk boundaries
are a pure function of the input: the same text always produces the same
chunks and therefore the same record ids.  Each window is trimmed and
windows that are empty after trimming are dropped.
"""

from __future__ import annotations

DEFAULT_CHUNK_SIZE = 1000


class TextChunker:
    """Order-preserving character-window chunker."""

    def __init__(self, max_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self._max_size = max_size

    @property
    def max_size(self) -> int:
        return self._max_size

    def chunk(self, text: str) -> list[str]:
        """Return trimmed, non-empty windows of *text* in order.

        Examples
        --------
        >>> TextChunker(max_size=4).chunk("abcdefgh  ")
        ['abcd', 'efgh']
        """
        windows = (text[i : i + self._max_size] for i in range(0, len(text), self._max_size))
        return [w.strip() for w in windows if w.strip()]
