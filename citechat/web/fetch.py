"""Plain HTTP fetching shared by the search provider and the page reader."""

from __future__ import annotations

import logging
from http.client import HTTPException
from urllib import request

import chardet


logger = logging.getLogger(__name__)


USER_AGENT = "Mozilla/5.0 (compatible; CiteChat/1.0; +https://example.com/bot)"
DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
}


class FetchError(RuntimeError):
    """Raised when a page cannot be downloaded."""


def decode_body(raw: bytes, charset: str | None = None) -> str:
    """Decode ``raw`` using the declared charset, UTF-8, or a detected encoding."""

    for encoding in filter(None, (charset, "utf-8")):
        try:
            return raw.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            continue
    detected = chardet.detect(raw).get("encoding") or "utf-8"
    return raw.decode(detected, errors="replace")


def fetch_text(url: str, *, timeout: float | None = None) -> str:
    """Download ``url`` and return its decoded body.

    Transport failures, including HTTP error statuses, surface as
    :class:`FetchError` so callers only need one ``except`` clause.
    """

    request_obj = request.Request(url, headers=DEFAULT_HEADERS)
    logger.debug("Fetching URL", extra={"url": url})
    try:
        if timeout is None:
            response_cm = request.urlopen(request_obj)
        else:
            response_cm = request.urlopen(request_obj, timeout=timeout)
        with response_cm as response:
            charset = response.headers.get_content_charset()
            raw = response.read()
    except (HTTPException, OSError, ValueError) as exc:
        raise FetchError(f"Failed to fetch {url}: {exc}") from exc
    return decode_body(raw, charset)


__all__ = ["DEFAULT_HEADERS", "FetchError", "USER_AGENT", "decode_body", "fetch_text"]
