"""Web search through the DuckDuckGo HTML endpoint."""

from __future__ import annotations

import logging
from urllib import parse

from bs4 import BeautifulSoup

from ..logging import log_call
from ..models import SearchResult
from .fetch import FetchError, fetch_text


logger = logging.getLogger(__name__)


SEARCH_URL = "https://duckduckgo.com/html/"
SEARCH_ORIGIN = "https://duckduckgo.com"
MAX_RESULTS = 10


def _absolute_url(href: str) -> str:
    if href.startswith(("http://", "https://")):
        return href
    if href.startswith("//"):
        return f"https:{href}"
    return f"{SEARCH_ORIGIN}{href}"


def unwrap_redirect(url: str) -> str:
    """Return the target of a DuckDuckGo ``/l/?uddg=`` redirect link."""

    parsed = parse.urlparse(url)
    if parsed.netloc.endswith("duckduckgo.com") and parsed.path.startswith("/l/"):
        target = parse.parse_qs(parsed.query).get("uddg")
        if target:
            return target[0]
    return url


def parse_search_results(html: str, *, limit: int = MAX_RESULTS) -> list[SearchResult]:
    """Extract ordered results from a DuckDuckGo HTML results page."""

    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []
    for anchor in soup.select("a.result__a"):
        href = (anchor.get("href") or "").strip()
        if not href:
            continue
        container = anchor.find_parent(class_="result") or anchor.parent
        snippet_node = container.select_one(".result__snippet") if container else None
        results.append(
            SearchResult(
                title=anchor.get_text(" ", strip=True),
                url=unwrap_redirect(_absolute_url(href)),
                snippet=snippet_node.get_text(" ", strip=True) if snippet_node else "",
            )
        )
        if len(results) >= limit:
            break
    return results


class DuckDuckGoSearch:
    """Search provider that never raises on network trouble."""

    def __init__(
        self,
        *,
        search_url: str = SEARCH_URL,
        max_results: int = MAX_RESULTS,
        timeout: float | None = None,
    ) -> None:
        self.search_url = search_url
        self.max_results = max_results
        self.timeout = timeout

    @log_call(logger=logger, include_args=False)
    def search(self, query: str) -> list[SearchResult]:
        """Return up to ``max_results`` hits for ``query``, or ``[]`` on failure."""

        cleaned = query.strip()
        if not cleaned:
            return []
        url = f"{self.search_url}?{parse.urlencode({'q': cleaned})}"
        try:
            html = fetch_text(url, timeout=self.timeout)
        except FetchError as exc:
            logger.warning(
                "Web search failed",
                extra={"query_preview": cleaned[:120], "error": str(exc)},
            )
            return []
        results = parse_search_results(html, limit=self.max_results)
        logger.info(
            "Web search completed",
            extra={"query_preview": cleaned[:120], "result_count": len(results)},
        )
        return results


__all__ = ["DuckDuckGoSearch", "parse_search_results", "unwrap_redirect"]
