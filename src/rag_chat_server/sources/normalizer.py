"""
Source Normalizer

Turns the raw inputs of an ingest request (inline text, an uploaded PDF and a
YouTube URL) into an ordered list of tagged source results.

The three branches run concurrently; the output order is always inline, PDF,
video, independent of which branch finishes first.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from .models import INLINE_SOURCE, Extracted, SourceDocument, SourceResult
from .pdf_loader import load_pdf
from .youtube_loader import TranscriptFetcher, load_youtube

logger = logging.getLogger("rag.normalizer")


async def load_inline(text: Optional[str]) -> List[SourceResult]:
    if not text or not text.strip():
        return []
    return [Extracted(document=SourceDocument(content=text, source=INLINE_SOURCE))]


async def normalize_sources(
    inline_text: Optional[str] = None,
    pdf_path: Optional[str] = None,
    pdf_filename: Optional[str] = None,
    youtube_url: Optional[str] = None,
    *,
    yt_language: str = "en",
    transcript_fetcher: Optional[TranscriptFetcher] = None,
) -> List[SourceResult]:
    """
    Normalize all inputs of one ingest request.

    Parameters
    ----------
    inline_text : Optional[str]
        Pasted text. Blank text yields nothing.

    pdf_path : Optional[str]
        Temporary path of an uploaded PDF.

    pdf_filename : Optional[str]
        Original filename of the upload, used as the source label.

    youtube_url : Optional[str]
        Video URL whose captions should be ingested.

    Returns
    -------
    List[SourceResult]
        Flattened results, inline first, then PDF, then video.

    Raises
    ------
    SourceUnavailable
        If the uploaded file cannot be accessed.
    """
    parts = await asyncio.gather(
        load_inline(inline_text),
        load_pdf(pdf_path, pdf_filename),
        load_youtube(youtube_url, yt_language, transcript_fetcher),
    )
    results = [result for part in parts for result in part]

    logger.debug(
        "Normalized %d sources (%d with content)",
        len(results),
        sum(1 for r in results if r.has_content),
    )
    return results


def documents_of(results: Sequence[SourceResult]) -> List[SourceDocument]:
    """Return the documents of all successful results, in order."""
    return [r.document for r in results if isinstance(r, Extracted)]


def notes_of(results: Sequence[SourceResult]) -> List[str]:
    """Return every diagnostic note, in order."""
    return [r.note for r in results if r.note]
