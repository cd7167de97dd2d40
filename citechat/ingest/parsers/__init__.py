"""Document parsers that turn uploaded bytes into plain text."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Callable, Iterable


@dataclass(slots=True)
class ParsedDocument:
    """Normalized representation returned by document parsers."""

    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    needs_ocr: bool = False


class ParserError(RuntimeError):
    """Raised when a parser cannot handle the supplied document."""


from .docx_parser import parse_docx
from .pdf_parser import parse_pdf
from .text_parser import parse_text


Parser = Callable[[bytes], ParsedDocument]


_PARSERS: dict[str, Parser] = {
    ".pdf": parse_pdf,
    ".docx": parse_docx,
    ".txt": parse_text,
    ".text": parse_text,
    ".md": parse_text,
    ".markdown": parse_text,
    ".csv": parse_text,
    ".json": parse_text,
    ".html": parse_text,
    ".htm": parse_text,
}


def register_parser(suffixes: Iterable[str], parser: Parser) -> None:
    """Register ``parser`` for the provided ``suffixes``."""

    for suffix in suffixes:
        _PARSERS[suffix.lower()] = parser


def parser_for(name: str) -> Parser:
    """Return the parser registered for the extension of ``name``."""

    suffix = PurePath(name).suffix.lower()
    parser = _PARSERS.get(suffix)
    if parser is None:
        raise ParserError(f"Unsupported file type: {suffix or name}")
    return parser


def parse_bytes(data: bytes, name: str) -> ParsedDocument:
    """Parse ``data`` with the parser matching the extension of ``name``."""

    return parser_for(name)(data)


__all__ = [
    "ParsedDocument",
    "ParserError",
    "parse_bytes",
    "parser_for",
    "register_parser",
]
