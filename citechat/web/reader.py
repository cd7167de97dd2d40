"""Main-body article extraction for fetched web pages."""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from ..logging import log_call
from ..models import PageContent
from .fetch import FetchError, fetch_text


logger = logging.getLogger(__name__)


_NOISE_TAGS = (
    "script",
    "style",
    "noscript",
    "template",
    "svg",
    "iframe",
    "form",
    "nav",
    "header",
    "footer",
    "aside",
)
_INLINE_SPACE_RE = re.compile(r"[ \t\r\f\v\xa0]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def _normalize_whitespace(text: str) -> str:
    lines = (_INLINE_SPACE_RE.sub(" ", line).strip() for line in text.splitlines())
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def extract_article(html: str, url: str) -> PageContent:
    """Return the title and readable body text of ``html``.

    The body comes from the first ``<article>`` or ``<main>`` element when the
    page has one, otherwise from ``<body>``; scripts and navigation chrome are
    dropped. The title falls back from ``<title>`` to the first ``<h1>`` and
    finally to ``url``.
    """

    soup = BeautifulSoup(html, "html.parser")
    title = ""
    if soup.title is not None:
        title = soup.title.get_text(" ", strip=True)
    if not title:
        heading = soup.find("h1")
        title = heading.get_text(" ", strip=True) if heading is not None else ""

    for tag in soup.find_all(list(_NOISE_TAGS)):
        tag.decompose()

    container = soup.find("article") or soup.find("main") or soup.body or soup
    text = _normalize_whitespace(container.get_text("\n"))
    return PageContent(title=title or url, text=text)


class PageReader:
    """Fetch a URL and reduce it to article text; failures yield empty text."""

    def __init__(self, *, timeout: float | None = None) -> None:
        self.timeout = timeout

    @log_call(logger=logger, include_args=True)
    def extract(self, url: str) -> PageContent:
        try:
            html = fetch_text(url, timeout=self.timeout)
        except FetchError as exc:
            logger.warning("Page fetch failed", extra={"url": url, "error": str(exc)})
            return PageContent(title="", text="")
        page = extract_article(html, url)
        logger.debug(
            "Extracted page content",
            extra={"url": url, "title": page.title, "text_length": len(page.text)},
        )
        return page


__all__ = ["PageReader", "extract_article"]
