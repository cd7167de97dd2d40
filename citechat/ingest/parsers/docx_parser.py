"""DOCX parser that extracts paragraph text and core properties."""

from __future__ import annotations

import datetime as _dt
import io
import zipfile
from typing import Any

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from . import ParsedDocument, ParserError


def _extract_core_properties(doc: Any) -> dict[str, Any]:
    properties = doc.core_properties
    metadata: dict[str, Any] = {}
    for attr in ("title", "subject", "author", "keywords"):
        value = getattr(properties, attr, None)
        if value:
            metadata[attr] = value

    for attr in ("created", "modified"):
        value = getattr(properties, attr, None)
        if isinstance(value, _dt.datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=_dt.timezone.utc)
            metadata[attr] = value.astimezone(_dt.timezone.utc).isoformat()
    return metadata


def parse_docx(data: bytes) -> ParsedDocument:
    """Parse a Word document, keeping one line per non-empty paragraph."""

    try:
        document = Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise ParserError(f"Unreadable DOCX: {exc}") from exc

    paragraphs = [p.text.rstrip() for p in document.paragraphs]
    body = [text for text in paragraphs if text]
    metadata = _extract_core_properties(document)
    metadata["paragraph_count"] = len(paragraphs)
    return ParsedDocument(text="\n".join(body), metadata=metadata)
