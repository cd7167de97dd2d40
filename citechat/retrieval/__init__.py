"""Segmentation and lexical ranking of source text."""

from .chunking import Chunk, segment
from .lexical import ScoredChunk, rank, score, score_chunks, tokenize

__all__ = [
    "Chunk",
    "ScoredChunk",
    "rank",
    "score",
    "score_chunks",
    "segment",
    "tokenize",
]
