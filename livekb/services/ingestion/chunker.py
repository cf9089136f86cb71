"""Windowed text chunking with sentence/paragraph boundary snapping.

A window of ``chunk_size`` characters slides over the text.  Before a
window is cut (unless it is the last one), its end is pulled back to just
after the last ``.`` or newline, provided that boundary sits at least
halfway into the window; otherwise the window is cut hard.  Consecutive
windows overlap by ``overlap`` characters, and every step advances the
start by at least one character so odd settings (overlap >= chunk size,
negative overlap) still terminate.  Chunking stops as soon as a window
reaches the end of the text, so no short overlap-only tail windows are
emitted after the last full chunk.

Chunks are returned trimmed; windows that are blank after trimming are
dropped.  Text no longer than ``chunk_size`` comes back unchanged as a
single chunk.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(logger_name=__name__)

_BOUNDARY_CHARS = (".", "\n")


class TextChunker:
    """Splits text into overlapping, boundary-snapped character windows.

    Parameters
    ----------
    chunk_size:
        Window length in characters (default 1000).
    overlap:
        Characters shared by consecutive windows (default 200).
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    def chunk(
        self,
        text: str,
        chunk_size: int | None = None,
        overlap: int | None = None,
    ) -> list[str]:
        """Split *text* into an ordered list of chunk strings.

        Parameters
        ----------
        text:
            The full document text.
        chunk_size, overlap:
            Per-call overrides of the instance defaults.

        Returns
        -------
        list[str]
            Ordered chunks.  ``[text]`` when the text fits in one window.
        """
        size = self._chunk_size if chunk_size is None else chunk_size
        step_back = self._overlap if overlap is None else overlap
        if size < 1:
            raise ValueError("chunk_size must be >= 1")

        text_length = len(text)
        if text_length <= size:
            return [text]

        chunks: list[str] = []
        start = 0
        while start < text_length:
            end = min(start + size, text_length)

            if end < text_length:
                breakpoint_ = self._last_boundary(text, end)
                if breakpoint_ >= start + size * 0.5:
                    end = breakpoint_ + 1

            piece = text[start:end].strip()
            if piece:
                chunks.append(piece)

            if end >= text_length:
                break
            start = max(end - step_back, start + 1)

        logger.debug(
            "chunking_complete",
            text_length=text_length,
            chunk_size=size,
            overlap=step_back,
            chunks=len(chunks),
        )
        return chunks

    @staticmethod
    def _last_boundary(text: str, end: int) -> int:
        """Index of the last boundary character at or before *end*, or -1."""
        return max(text.rfind(ch, 0, end + 1) for ch in _BOUNDARY_CHARS)
