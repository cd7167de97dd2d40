"""Fixed-size overlapping segmentation of long document text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_CHUNK_SIZE = 1600
DEFAULT_OVERLAP = 200


@dataclass(frozen=True, slots=True)
class Chunk:
    """Contiguous window of a source text starting at ``offset``."""

    source_ref: Any
    offset: int
    text: str

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


def validate_window(chunk_size: int, overlap: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must not be negative, got {overlap}")
    if overlap >= chunk_size:
        raise ValueError(
            f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
        )


def segment(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    *,
    source_ref: Any = None,
) -> list[Chunk]:
    """Split ``text`` into windows of ``chunk_size`` sharing ``overlap`` characters.

    Windows start every ``chunk_size - overlap`` characters; the last one may
    be shorter. Segmentation stops at the first window that reaches the end of
    the text, since any later window would be contained in it, so text longer
    than ``overlap`` yields ``ceil((len(text) - overlap) / step)`` chunks and
    shorter non-empty text yields one. Empty text yields no chunks.
    """

    validate_window(chunk_size, overlap)
    step = chunk_size - overlap
    length = len(text)
    chunks: list[Chunk] = []
    offset = 0
    while offset < length:
        chunks.append(Chunk(source_ref, offset, text[offset : offset + chunk_size]))
        if offset + chunk_size >= length:
            break
        offset += step
    return chunks


__all__ = ["Chunk", "DEFAULT_CHUNK_SIZE", "DEFAULT_OVERLAP", "segment", "validate_window"]
