"""Plain text parser with encoding detection."""

from __future__ import annotations

import chardet

from . import ParsedDocument


def parse_text(data: bytes) -> ParsedDocument:
    """Decode ``data`` as UTF-8, falling back to the encoding chardet detects."""

    encoding = "utf-8"
    try:
        text = data.decode(encoding)
    except UnicodeDecodeError:
        encoding = chardet.detect(data).get("encoding") or "utf-8"
        text = data.decode(encoding, errors="replace")
    return ParsedDocument(text=text, metadata={"encoding": encoding})
