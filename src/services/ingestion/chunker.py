"""Recursive character text splitting with overlapping windows.

Splits extracted document text into ordered, overlapping chunks sized for
embedding (1000 characters with up to 200 characters of overlap by default).

The strategy has three steps:

1. **Recursive split** -- The text is cut after every occurrence of the
   highest-priority separator it contains (paragraph break, line break,
   ". ", space).  Any piece still larger than the budget is split again
   with the next separator; the empty separator cuts single characters.
   Separators stay attached to the piece they end, so no character is
   ever dropped.

2. **Merge** -- Adjacent pieces are packed greedily into windows of at
   most ``chunk_size`` characters.

3. **Overlap** -- When a window is flushed, its trailing pieces (at most
   ``overlap`` characters) seed the next window, so text spanning a
   boundary appears in both chunks.

Chunks are computed as ``(start, end)`` offsets into the original text.
Every chunk is therefore an exact substring, consecutive chunks overlap by
``previous_end - next_start`` characters, and removing those overlaps
reconstructs the input exactly.  The only exception is a window made
entirely of whitespace, which is dropped rather than emitted as a chunk.
"""

from __future__ import annotations

from collections import deque

import structlog

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")


class TextChunker:
    """Splits text into overlapping chunks on a separator hierarchy.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 1000).
    overlap:
        Maximum characters shared by consecutive chunks (default 200).
    separators:
        Separators in priority order.  The empty string means "split at
        character boundaries" and should come last.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        overlap: int = 200,
        separators: list[str] | tuple[str, ...] | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be non-negative and smaller than chunk_size")
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._separators = tuple(separators) if separators is not None else DEFAULT_SEPARATORS

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str) -> list[str]:
        """Split *text* into ordered, overlapping chunks.

        Empty or whitespace-only input returns an empty list.
        """
        chunks = [text[start:end] for start, end in self.chunk_spans(text)]
        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            text_length=len(text),
        )
        return chunks

    def chunk_spans(self, text: str) -> list[tuple[int, int]]:
        """Return ``(start, end)`` offsets of each chunk within *text*."""
        if not text or not text.strip():
            return []
        pieces = self._split(text, 0, len(text), self._separators)
        # A long whitespace run can fill whole windows on its own.
        return [(start, end) for start, end in self._merge(pieces) if text[start:end].strip()]

    # ------------------------------------------------------------------
    # Recursive splitting
    # ------------------------------------------------------------------

    def _split(
        self,
        text: str,
        start: int,
        end: int,
        separators: tuple[str, ...],
    ) -> list[tuple[int, int]]:
        """Cut ``text[start:end]`` into pieces no longer than the chunk budget."""
        if end - start <= self._chunk_size:
            return [(start, end)]

        separator: str | None = None
        remaining: tuple[str, ...] = ()
        for index, candidate in enumerate(separators):
            if candidate == "" or text.find(candidate, start, end) != -1:
                separator = candidate
                remaining = separators[index + 1 :]
                break

        if separator == "":
            return [(pos, pos + 1) for pos in range(start, end)]
        if separator is None:
            # No configured separator applies; fall back to fixed-width cuts.
            return [
                (pos, min(pos + self._chunk_size, end))
                for pos in range(start, end, self._chunk_size)
            ]

        pieces: list[tuple[int, int]] = []
        piece_start = start
        found = text.find(separator, start, end)
        while found != -1:
            piece_end = found + len(separator)
            pieces.append((piece_start, piece_end))
            piece_start = piece_end
            found = text.find(separator, piece_start, end)
        if piece_start < end:
            pieces.append((piece_start, end))

        result: list[tuple[int, int]] = []
        for piece_start, piece_end in pieces:
            if piece_end - piece_start <= self._chunk_size:
                result.append((piece_start, piece_end))
            else:
                result.extend(self._split(text, piece_start, piece_end, remaining))
        return result

    # ------------------------------------------------------------------
    # Window accumulation
    # ------------------------------------------------------------------

    def _merge(self, pieces: list[tuple[int, int]]) -> list[tuple[int, int]]:
        """Pack contiguous pieces into windows, carrying overlap between them."""
        chunks: list[tuple[int, int]] = []
        window: deque[tuple[int, int]] = deque()
        window_length = 0

        for piece_start, piece_end in pieces:
            piece_length = piece_end - piece_start
            if window and window_length + piece_length > self._chunk_size:
                chunks.append((window[0][0], window[-1][1]))
                # Drop leading pieces until what is left fits the overlap
                # budget and leaves room for the incoming piece.
                while window and (
                    window_length > self._overlap
                    or window_length + piece_length > self._chunk_size
                ):
                    dropped_start, dropped_end = window.popleft()
                    window_length -= dropped_end - dropped_start
            window.append((piece_start, piece_end))
            window_length += piece_length

        if window:
            chunks.append((window[0][0], window[-1][1]))
        return chunks
