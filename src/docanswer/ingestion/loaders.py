"""Document text extraction and chunking.

PDFs are read with PyMuPDF (fitz), Word documents with python-docx and plain
text files as UTF-8. Every loader returns the raw extracted text; chunking is
shared so all formats produce identical ``Chunk`` windows.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List

import docx
import fitz  # PyMuPDF

from docanswer.models import Chunk
from docanswer.utils.files import SUPPORTED_EXTENSIONS, file_extension
from docanswer.utils.text import chunk_spans

LOGGER = logging.getLogger(__name__)

LARGE_FILE_BYTES = 5 * 1024 * 1024


class DocumentProcessingError(ValueError):
    """Raised when a document cannot be turned into text chunks."""


def _warn_if_large(path: Path, size: int) -> None:
    if size > LARGE_FILE_BYTES:
        LOGGER.warning(
            "Large file %s (%.2f MB); processing may take time",
            path.name,
            size / 1024 / 1024,
        )


def iter_pdf_pages(path: Path) -> Iterator[str]:
    """Yield text content from a PDF file page by page."""
    try:
        doc = fitz.open(path)
    except Exception as exc:
        raise DocumentProcessingError(f"Failed to process PDF: {exc}") from exc

    try:
        for index in range(len(doc)):
            try:
                text = doc[index].get_text() or ""
            except Exception as exc:  # pragma: no cover
                LOGGER.warning("Failed to read page %s in %s: %s", index, path, exc)
                continue
            yield text.strip()
    finally:
        doc.close()


def read_pdf(path: Path) -> str:
    pages = list(iter_pdf_pages(path))
    text = "\n".join(page for page in pages if page)
    if not text.strip():
        if pages:
            raise DocumentProcessingError(
                f"PDF appears to be a scanned document or image-based PDF ({len(pages)} page(s)). "
                "The PDF contains images but no extractable text. Please use a PDF with "
                "selectable text, or convert scanned PDFs to text using OCR."
            )
        raise DocumentProcessingError("PDF appears to be empty or contains no extractable text")
    LOGGER.debug("Extracted %d characters from %d page(s) of %s", len(text), len(pages), path.name)
    return text


def read_text_file(path: Path) -> str:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentProcessingError(f"Failed to process text file: {exc}") from exc
    if not text.strip():
        raise DocumentProcessingError("Text file is empty")
    return text


def read_docx(path: Path) -> str:
    try:
        document = docx.Document(str(path))
    except Exception as exc:
        raise DocumentProcessingError(f"Failed to process DOCX: {exc}") from exc

    parts: List[str] = [para.text for para in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.append(" | ".join(cell.text.strip() for cell in row.cells))

    text = "\n".join(parts)
    if not text.strip():
        raise DocumentProcessingError("DOCX appears to be empty or contains no extractable text")
    return text


def load_document_text(path: Path) -> str:
    """Extract raw text from a supported document."""
    ext = file_extension(path)
    if ext not in SUPPORTED_EXTENSIONS:
        raise DocumentProcessingError("Only PDF, TXT, and DOCX files are allowed")

    _warn_if_large(path, path.stat().st_size)
    if ext == ".pdf":
        return read_pdf(path)
    if ext == ".docx":
        return read_docx(path)
    return read_text_file(path)


def build_chunks(
    text: str,
    source_file: str,
    *,
    file_size: int | None = None,
    max_chars: int = 1000,
    overlap: int = 200,
    max_chunks: int = 10000,
) -> List[Chunk]:
    """Split extracted text into ``Chunk`` records for one document.

    Whitespace-only windows are skipped and the remaining chunks are numbered
    contiguously.
    """
    windows = [
        (start, end, window)
        for start, end, window in chunk_spans(
            text, max_chars=max_chars, overlap=overlap, max_chunks=max_chunks
        )
        if window.strip()
    ]
    return [
        Chunk(
            text=window,
            source_file=source_file,
            chunk_index=idx,
            start_index=start,
            end_index=end,
            file_size=file_size,
        )
        for idx, (start, end, window) in enumerate(windows)
    ]
