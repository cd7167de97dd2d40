"""Lexical relevance scoring and ranking of text chunks.

Scores are literal substring counts of the query terms, which keeps ranking
deterministic and easy to audit. Matching is deliberately not word-bounded:
the query ``"go"`` also counts the ``go`` inside ``"google"``. Short or
punctuation-split tokens can therefore over-match; callers that need
whole-word precision should not rely on this module.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from .chunking import Chunk

_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class ScoredChunk:
    """A chunk paired with its query score."""

    chunk: Chunk
    score: int


def tokenize(query: str) -> list[str]:
    """Return lower-cased alphanumeric query terms, keeping repeats."""

    return [token for token in _TOKEN_SPLIT_RE.split(query.lower()) if token]


def _score_tokens(text: str, tokens: Sequence[str]) -> int:
    lowered = text.lower()
    return sum(len(lowered.split(token)) - 1 for token in tokens)


def score(chunk: str, query: str) -> int:
    """Sum the literal occurrences of every query term inside ``chunk``.

    Repeated query terms are counted once per repetition. A query without
    alphanumeric terms scores ``0``.
    """

    return _score_tokens(chunk, tokenize(query))


def score_chunks(chunks: Sequence[Chunk], query: str) -> list[ScoredChunk]:
    tokens = tokenize(query)
    return [ScoredChunk(chunk, _score_tokens(chunk.text, tokens)) for chunk in chunks]


def rank(chunks: Sequence[Chunk], query: str, k: int) -> list[Chunk]:
    """Return up to ``k`` chunks ordered by descending score.

    The sort is stable, so chunks with equal scores (including all-zero
    scores) keep their document order.
    """

    if k < 0:
        raise ValueError(f"k must not be negative, got {k}")
    scored = sorted(score_chunks(chunks, query), key=lambda item: item.score, reverse=True)
    return [item.chunk for item in scored[:k]]


__all__ = ["ScoredChunk", "rank", "score", "score_chunks", "tokenize"]
