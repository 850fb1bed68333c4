"""PDF text extraction for question bank imports."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Union

import pdfplumber

logger = logging.getLogger(__name__)

PdfSource = Union[str, Path, BinaryIO]


class PdfTextExtractionError(RuntimeError):
    """Raised when a PDF cannot be opened or read."""


def extract_text_from_pdf(source: PdfSource) -> str:
    """
    Extract plain text from every page of a PDF.

    Args:
        source: File path or binary stream (e.g. an uploaded file).

    Returns:
        Page texts joined by newlines. Pages without a text layer are skipped.

    Raises:
        PdfTextExtractionError: If pdfplumber fails to read the document.
    """
    if isinstance(source, Path):
        source = str(source)

    page_texts = []
    try:
        with pdfplumber.open(source) as pdf:
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    page_texts.append(text)
    except Exception as exc:
        raise PdfTextExtractionError(str(exc) or exc.__class__.__name__) from exc

    logger.debug("Extracted %d text pages from PDF", len(page_texts))
    return "\n".join(page_texts)


__all__ = ["PdfTextExtractionError", "extract_text_from_pdf"]
