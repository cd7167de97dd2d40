"""Gather the per-turn context sources from the web and held documents."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

from ..logging import log_call
from ..models import PageContent, SearchResult, Source, SourceKind
from ..retrieval import rank, segment
from ..retrieval.chunking import DEFAULT_CHUNK_SIZE, DEFAULT_OVERLAP, validate_window


logger = logging.getLogger(__name__)


MAX_WEB_RESULTS = 3
EXCERPT_TOP_K = 5
EXCERPT_TITLE = "Relevant excerpts"
EXCERPT_SEPARATOR = "\n\n---\n\n"


class SearchProvider(Protocol):
    def search(self, query: str) -> Sequence[SearchResult]: ...


class PageExtractor(Protocol):
    def extract(self, url: str) -> PageContent: ...


@dataclass(frozen=True)
class FetchOutcome:
    """Settled result of reading one search hit: a source or an error."""

    result: SearchResult
    source: Source | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.source is not None


class SourceAggregator:
    """Collect web pages and document excerpts for a single turn.

    Web sources always precede the document excerpt so citation numbers
    follow search order.
    """

    def __init__(
        self,
        search_provider: SearchProvider,
        page_reader: PageExtractor,
        *,
        max_web_results: int = MAX_WEB_RESULTS,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_OVERLAP,
        top_k: int = EXCERPT_TOP_K,
    ) -> None:
        validate_window(chunk_size, chunk_overlap)
        if top_k < 0:
            raise ValueError(f"top_k must not be negative, got {top_k}")
        self.search_provider = search_provider
        self.page_reader = page_reader
        self.max_web_results = max(max_web_results, 0)
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.top_k = top_k

    @log_call(logger=logger, include_args=False)
    def collect(
        self,
        query: str,
        documents: Sequence[Source] = (),
        *,
        auto_browse: bool = True,
    ) -> list[Source]:
        """Return web sources in search order followed by at most one excerpt."""

        sources: list[Source] = []
        if auto_browse:
            sources.extend(self.gather_web_sources(query))
        excerpt = self.excerpt_documents(query, documents)
        if excerpt is not None:
            sources.append(excerpt)
        logger.info(
            "Collected turn sources",
            extra={
                "query_preview": query[:120],
                "auto_browse": auto_browse,
                "web_count": sum(1 for source in sources if source.is_web),
                "has_excerpt": excerpt is not None,
            },
        )
        return sources

    def gather_web_sources(self, query: str) -> list[Source]:
        try:
            results = list(self.search_provider.search(query))
        except Exception as exc:
            logger.warning(
                "Search provider raised; continuing without web sources",
                extra={"query_preview": query[:120], "error": str(exc)},
            )
            return []
        outcomes = self.fetch_all(results[: self.max_web_results])
        for outcome in outcomes:
            if not outcome.ok:
                logger.warning(
                    "Dropping web source",
                    extra={"url": outcome.result.url, "error": outcome.error},
                )
        return [outcome.source for outcome in outcomes if outcome.source is not None]

    def fetch_all(self, results: Sequence[SearchResult]) -> list[FetchOutcome]:
        """Read every result in parallel and wait for all of them to settle.

        Outcomes are returned in the order of ``results``, not completion order.
        """

        if not results:
            return []
        with ThreadPoolExecutor(
            max_workers=len(results), thread_name_prefix="PageReader"
        ) as pool:
            futures = [pool.submit(self._fetch_one, result) for result in results]
            return [future.result() for future in futures]

    def _fetch_one(self, result: SearchResult) -> FetchOutcome:
        if not result.url:
            return FetchOutcome(result, error="search result has no URL")
        try:
            page = self.page_reader.extract(result.url)
        except Exception as exc:
            return FetchOutcome(result, error=f"{type(exc).__name__}: {exc}")
        if page.is_empty:
            return FetchOutcome(result, error="no usable text")
        title = page.title or result.title or result.url
        return FetchOutcome(result, source=Source.web(title=title, url=result.url, text=page.text))

    def excerpt_documents(self, query: str, documents: Sequence[Source]) -> Source | None:
        """Fold the best-matching chunks of all documents into one source."""

        held = [source for source in documents if source.kind is SourceKind.DOCUMENT]
        if not held:
            return None
        combined = "\n\n".join(source.text for source in held)
        chunks = segment(combined, self.chunk_size, self.chunk_overlap)
        top = rank(chunks, query, self.top_k)
        logger.debug(
            "Ranked document chunks",
            extra={
                "document_count": len(held),
                "chunk_count": len(chunks),
                "selected_offsets": [chunk.offset for chunk in top],
            },
        )
        return Source.document(
            title=EXCERPT_TITLE,
            text=EXCERPT_SEPARATOR.join(chunk.text for chunk in top),
        )


__all__ = ["FetchOutcome", "SourceAggregator"]
