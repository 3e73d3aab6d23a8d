"""PDF loading helpers."""

from __future__ import annotations

import logging
from pathlib import Path
import uuid

import fitz

from pdffields.model.document import PdfDocument

logger = logging.getLogger(__name__)


class SourceDocumentUnreadable(RuntimeError):
    """Raised when the source PDF cannot be opened, rendered or read."""


def open_pdf_bytes(data: bytes, path: Path | None = None) -> PdfDocument:
    label = path if path is not None else "<bytes>"
    try:
        handle = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise SourceDocumentUnreadable(f"Failed to open PDF: {label}") from exc

    if handle.page_count == 0:
        handle.close()
        raise SourceDocumentUnreadable(f"PDF has no pages: {label}")

    document = PdfDocument(path=path, key=str(uuid.uuid4()), data=data, handle=handle)
    logger.info("Loaded %s (%d page(s))", label, document.page_count)
    return document


def load_pdf(path: str | Path) -> PdfDocument:
    source_path = Path(path)
    if not source_path.exists():
        raise SourceDocumentUnreadable(f"File not found: {source_path}")

    try:
        data = source_path.read_bytes()
    except OSError as exc:
        raise SourceDocumentUnreadable(f"Failed to read PDF: {source_path}") from exc

    return open_pdf_bytes(data, source_path)
