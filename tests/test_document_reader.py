from __future__ import annotations

import io
from pathlib import Path

import fitz
import pytest
from docx import Document

from citechat.ingest import DocumentReader, ParserError
from citechat.ingest.parsers import parse_bytes, parser_for


def _pdf_bytes(*pages: str) -> bytes:
    document = fitz.open()
    try:
        for text in pages:
            page = document.new_page()
            if text:
                page.insert_text((72, 72), text)
        return document.tobytes()
    finally:
        document.close()


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    document.core_properties.title = "Field notes"
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def test_extract_reads_pdf_text() -> None:
    data = _pdf_bytes("Ownership rules", "Borrowing rules")

    document = DocumentReader().extract(data, "rust.pdf")

    assert document.name == "rust.pdf"
    assert "Ownership rules" in document.text
    assert "Borrowing rules" in document.text


def test_extract_defaults_to_pdf_when_name_is_missing() -> None:
    document = DocumentReader().extract(_pdf_bytes("Untitled upload"))

    assert document.name == "document.pdf"
    assert "Untitled upload" in document.text


def test_scanned_pdf_is_flagged_for_ocr() -> None:
    parsed = parse_bytes(_pdf_bytes(""), "scan.pdf")

    assert parsed.needs_ocr
    assert parsed.text == ""
    assert parsed.metadata["page_count"] == 1


def test_corrupt_pdf_raises_parser_error() -> None:
    with pytest.raises(ParserError):
        DocumentReader().extract(b"not a pdf document", "broken.pdf")


def test_extract_reads_docx_paragraphs() -> None:
    parsed = parse_bytes(_docx_bytes("First paragraph", "", "Second paragraph"), "notes.docx")

    assert parsed.text == "First paragraph\nSecond paragraph"
    assert parsed.metadata["title"] == "Field notes"
    assert parsed.metadata["paragraph_count"] == 3


def test_corrupt_docx_raises_parser_error() -> None:
    with pytest.raises(ParserError):
        parse_bytes(b"not a zip archive", "notes.docx")


def test_text_files_fall_back_to_detected_encoding() -> None:
    raw = ("Le café est très chaud. " * 20).encode("latin-1")

    parsed = parse_bytes(raw, "notes.txt")

    assert parsed.metadata["encoding"].lower() != "utf-8"
    assert "caf" in parsed.text


def test_extract_strips_nul_characters() -> None:
    document = DocumentReader().extract(b"ab\x00cd\x00", "nul.txt")

    assert document.text == "abcd"


def test_extract_truncates_long_documents() -> None:
    reader = DocumentReader(max_chars=10)

    document = reader.extract(b"0123456789abcdef", "long.txt")

    assert document.text == "0123456789"


def test_reader_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        DocumentReader(max_chars=0)


def test_unsupported_extension_raises_parser_error() -> None:
    with pytest.raises(ParserError, match="Unsupported file type"):
        parser_for("diagram.png")


def test_read_path_uses_file_name(tmp_path: Path) -> None:
    path = tmp_path / "README.md"
    path.write_text("# Title\nBody", encoding="utf-8")

    document = DocumentReader().read_path(path)

    assert document.name == "README.md"
    assert document.text == "# Title\nBody"


def test_read_path_reports_missing_files(tmp_path: Path) -> None:
    with pytest.raises(ParserError):
        DocumentReader().read_path(tmp_path / "missing.txt")
