"""
Document chunking with overlapping windows.

Documents are split by content length with recursive fallback across
paragraph breaks, line breaks, sentence ends, spaces and finally raw
characters, so splits prefer semantic boundaries but always terminate.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from langchain_text_splitters import RecursiveCharacterTextSplitter

from ..sources.models import SourceDocument
from .models import Chunk

logger = logging.getLogger("rag.chunker")

SEPARATORS = ["\n\n", "\n", ".", " ", ""]


class Chunker:
    """
    Split source documents into overlapping chunks.

    Parameters
    ----------
    chunk_size : int
        Maximum characters per chunk (default 800).

    chunk_overlap : int
        Characters shared between consecutive chunks (default 160).
    """

    def __init__(self, chunk_size: int = 800, chunk_overlap: int = 160) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
            separators=SEPARATORS,
            keep_separator="end",
        )

    def split(self, documents: Sequence[SourceDocument]) -> List[Chunk]:
        """
        Split documents in order. Documents without content yield no chunks.
        """
        chunks: List[Chunk] = []

        for doc_index, doc in enumerate(documents):
            if not doc.has_content:
                continue

            pieces = [p for p in self._splitter.split_text(doc.content) if p.strip()]
            base = doc.metadata
            for chunk_index, piece in enumerate(pieces):
                meta = dict(base)
                meta["document_index"] = doc_index
                meta["chunk_index"] = chunk_index
                chunks.append(Chunk(content=piece, metadata=meta))

        logger.debug(
            "Chunked %d documents into %d chunks (size=%d, overlap=%d)",
            len(documents),
            len(chunks),
            self.chunk_size,
            self.chunk_overlap,
        )
        return chunks
