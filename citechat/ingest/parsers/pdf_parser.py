"""Utilities for extracting text and metadata from PDF files."""

from __future__ import annotations

import fitz

from . import ParsedDocument, ParserError


def parse_pdf(data: bytes) -> ParsedDocument:
    """Extract the text of every page of the PDF in ``data`` using PyMuPDF."""

    try:
        document = fitz.open(stream=data, filetype="pdf")
    except (fitz.FileDataError, RuntimeError, ValueError) as exc:
        raise ParserError(f"Unreadable PDF: {exc}") from exc

    if document.page_count == 0:
        document.close()
        raise ParserError("Unreadable PDF: no pages")

    try:
        texts = [page.get_text("text").strip() for page in document]
        metadata = {key: value for key, value in (document.metadata or {}).items() if value}
        metadata["page_count"] = int(document.page_count)
    finally:
        document.close()

    # Pages without a text layer (scans) come back empty.
    needs_ocr = not any(texts)
    return ParsedDocument(
        text="\n\n".join(filter(None, texts)),
        metadata=metadata,
        needs_ocr=needs_ocr,
    )
