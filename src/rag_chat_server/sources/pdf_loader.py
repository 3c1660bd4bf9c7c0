"""
PDF source loader.

Reads an uploaded PDF with PyMuPDF (fitz) and returns the whole document as a
single source. Extraction errors never propagate: they become a `SoftFailure`
carrying the reason, so the rest of the ingest batch can still succeed.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from ..core.errors import ExtractionFailure, SourceUnavailable
from .models import DEFAULT_PDF_NAME, Extracted, SoftFailure, SourceDocument, SourceResult

logger = logging.getLogger("rag.pdf")


def _is_readable_file(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.R_OK)


def extract_pdf_text(file_path: str) -> Tuple[str, int]:
    """
    Extract the text layer of every page, joined by blank lines.

    Returns
    -------
    Tuple[str, int]
        The document text and the number of pages read.

    Raises
    ------
    ExtractionFailure
        If PyMuPDF cannot open or read the file.
    """
    try:
        doc = fitz.open(file_path)
    except Exception as exc:
        raise ExtractionFailure(str(exc) or type(exc).__name__) from exc

    try:
        pages = [page.get_text("text").strip() for page in doc]
    except Exception as exc:
        raise ExtractionFailure(str(exc) or type(exc).__name__) from exc
    finally:
        doc.close()

    text = "\n\n".join(p for p in pages if p)
    return text, len(pages)


async def load_pdf(
    file_path: Optional[str],
    original_name: Optional[str] = None,
) -> List[SourceResult]:
    """
    Normalize an uploaded PDF into at most one source result.

    Raises
    ------
    SourceUnavailable
        If the temporary upload path cannot be read.
    """
    if not file_path:
        return []

    if not await asyncio.to_thread(_is_readable_file, file_path):
        raise SourceUnavailable(f"Uploaded file cannot be accessed at {file_path}")

    source = original_name or DEFAULT_PDF_NAME

    try:
        text, page_count = await asyncio.to_thread(extract_pdf_text, file_path)
    except ExtractionFailure as exc:
        logger.warning("PDF extraction failed for %s: %s", source, exc.message)
        return [SoftFailure(source=source, note=f"Error processing PDF: {exc.message}")]

    if not text.strip():
        logger.warning("PDF %s has no text layer (%d pages)", source, page_count)
        return [
            SoftFailure(
                source=source,
                note="No extractable text in PDF (scanned images are not supported)",
            )
        ]

    logger.info("Loaded PDF %s: %d pages, %d chars", source, page_count, len(text))
    return [
        Extracted(
            document=SourceDocument(
                content=text,
                source=source,
                extra={"pages": page_count},
            )
        )
    ]
