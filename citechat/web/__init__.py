"""Web search and page reading collaborators."""

from .fetch import FetchError, fetch_text
from .reader import PageReader, extract_article
from .search import DuckDuckGoSearch, parse_search_results

__all__ = [
    "DuckDuckGoSearch",
    "FetchError",
    "PageReader",
    "extract_article",
    "fetch_text",
    "parse_search_results",
]
