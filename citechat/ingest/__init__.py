"""Document ingestion for user uploads."""

from .parsers import ParsedDocument, ParserError
from .reader import DocumentReader

__all__ = ["DocumentReader", "ParsedDocument", "ParserError"]
