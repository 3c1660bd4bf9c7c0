"""
Ingestion Service

Runs one ingest request end to end:

1. Normalize the inputs (inline text, PDF upload, YouTube URL) concurrently.
2. Remove the temporary upload, whatever the outcome.
3. Fail with `NoExtractableContent` when no input produced text.
4. Chunk the extracted documents.
5. Upsert the chunks into the target collection: the shared collection, or a
   fresh one per session when ``COLLECTION_MODE=per_session``.
6. Register a session bound to that collection.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Literal, Optional

from ..config import settings
from ..core.errors import NoExtractableContent
from ..embeddings.chunker import Chunker
from ..embeddings.gateway import IndexGateway
from ..embeddings.models import CollectionHandle
from ..prompts import NO_CONTENT_ERROR
from ..sessions.store import SessionStore
from ..sources.normalizer import documents_of, normalize_sources, notes_of
from ..sources.youtube_loader import TranscriptFetcher
from .models import IngestResult, SourceSummary

logger = logging.getLogger("rag.ingest")

CollectionMode = Literal["shared", "per_session"]


async def discard_upload(path: str) -> None:
    """Delete a temporary upload. Failures are logged and ignored."""
    try:
        await asyncio.to_thread(os.remove, path)
    except OSError as exc:
        logger.debug("Could not remove upload %s: %s", path, exc)


class IngestionService:
    """
    Orchestrates normalization, chunking, upsert and session creation.
    """

    def __init__(
        self,
        gateway: IndexGateway,
        chunker: Chunker,
        sessions: SessionStore,
        collection_mode: Optional[CollectionMode] = None,
        yt_language: Optional[str] = None,
        transcript_fetcher: Optional[TranscriptFetcher] = None,
    ) -> None:
        self._gateway = gateway
        self._chunker = chunker
        self._sessions = sessions
        self.collection_mode = collection_mode or settings.collection_mode
        self.yt_language = yt_language or settings.yt_language
        self._transcript_fetcher = transcript_fetcher

    async def _target_handle(self) -> CollectionHandle:
        if self.collection_mode == "per_session":
            return self._gateway.isolated_handle()
        return await self._gateway.shared_handle()

    async def ingest(
        self,
        inline_text: Optional[str] = None,
        pdf_path: Optional[str] = None,
        pdf_filename: Optional[str] = None,
        youtube_url: Optional[str] = None,
    ) -> IngestResult:
        """
        Ingest one batch of inputs and open a session over it.

        Parameters
        ----------
        pdf_path : Optional[str]
            Temporary upload path. The file is deleted after normalization.

        Raises
        ------
        SourceUnavailable
            If the upload cannot be accessed.

        NoExtractableContent
            If no input produced text. Carries the diagnostic notes.

        ProviderFailure
            If embedding or the vector database fails.
        """
        try:
            results = await normalize_sources(
                inline_text,
                pdf_path,
                pdf_filename,
                youtube_url,
                yt_language=self.yt_language,
                transcript_fetcher=self._transcript_fetcher,
            )
        finally:
            if pdf_path:
                await discard_upload(pdf_path)

        if not any(r.has_content for r in results):
            notes = notes_of(results)
            logger.info("Ingest rejected: no extractable content (%d notes)", len(notes))
            raise NoExtractableContent(NO_CONTENT_ERROR, notes)

        chunks = self._chunker.split(documents_of(results))
        handle = await self._target_handle()
        added = await self._gateway.upsert(chunks, handle)
        session_id = self._sessions.create(handle)

        logger.info(
            "Ingested %d sources into %s: %d chunks, session %s",
            len(results),
            handle.name,
            added,
            session_id,
        )

        return IngestResult(
            session_id=session_id,
            chunks=len(chunks),
            added=added,
            sources=[
                SourceSummary(source=r.source, note=r.note, has_content=r.has_content)
                for r in results
            ],
        )
