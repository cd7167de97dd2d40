"""Document reader that feeds uploaded files into the conversation."""

from __future__ import annotations

import logging
from pathlib import Path

from ..logging import log_call
from ..models import DocumentText
from .parsers import ParserError, parse_bytes


logger = logging.getLogger(__name__)


MAX_DOCUMENT_CHARS = 500_000
DEFAULT_DOCUMENT_NAME = "document.pdf"


class DocumentReader:
    """Extract bounded plain text from uploaded document bytes."""

    def __init__(self, *, max_chars: int = MAX_DOCUMENT_CHARS) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self.max_chars = max_chars

    @log_call(logger=logger, include_args=False)
    def extract(self, data: bytes, name: str | None = None) -> DocumentText:
        """Return the text of ``data`` truncated to ``max_chars`` characters.

        ``name`` selects the parser by extension and defaults to a PDF name.
        NUL characters, which some PDF producers emit, are removed.
        """

        resolved_name = name or DEFAULT_DOCUMENT_NAME
        parsed = parse_bytes(data, resolved_name)
        if parsed.needs_ocr:
            logger.warning(
                "Document has no extractable text; OCR it before uploading",
                extra={"document": resolved_name},
            )
        text = parsed.text.replace("\x00", "")
        if len(text) > self.max_chars:
            logger.info(
                "Truncating document text",
                extra={
                    "document": resolved_name,
                    "length": len(text),
                    "max_chars": self.max_chars,
                },
            )
            text = text[: self.max_chars]
        return DocumentText(name=resolved_name, text=text)

    def read_path(self, path: str | Path) -> DocumentText:
        resolved = Path(path)
        try:
            data = resolved.read_bytes()
        except OSError as exc:
            raise ParserError(f"Cannot read document {resolved}: {exc}") from exc
        return self.extract(data, resolved.name)


__all__ = ["DocumentReader", "MAX_DOCUMENT_CHARS"]
