"""
Index Gateway

Single entry point for writing chunks to, and searching, named collections.
The gateway embeds text through the `Embedder` and delegates storage to a
`VectorBackend`; it never caches vectors itself.

Collections
-----------
- The shared collection (``COLLECTION_NAME``) is bound lazily to one
  process-wide handle, initialized exactly once under an asyncio lock.
- `isolated_handle` names a fresh collection for per-session ingestion.
- `connect` only builds a handle; a collection is created on first write.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import List, Optional, Sequence

from .backend import VectorBackend
from .embedder import Embedder
from .models import Chunk, CollectionHandle, RetrievedChunk, validate_collection_name
from ..config import settings

logger = logging.getLogger("rag.gateway")


class IndexGateway:
    """
    Upsert and similarity search over the vector backend.
    """

    def __init__(
        self,
        embedder: Embedder,
        backend: VectorBackend,
        shared_collection: Optional[str] = None,
    ) -> None:
        self._embedder = embedder
        self._backend = backend
        self._shared_name = shared_collection or settings.collection_name
        self._shared_handle: Optional[CollectionHandle] = None
        self._shared_lock = asyncio.Lock()

    @property
    def backend(self) -> VectorBackend:
        return self._backend

    # ------------------------------------------------------------------
    # Handles
    # ------------------------------------------------------------------

    def connect(self, collection: str) -> CollectionHandle:
        """
        Return a handle bound to a collection. Does not create it.

        Raises
        ------
        InvalidCollectionError
            If the name is empty or not a plain 1-64 character identifier.
        """
        return CollectionHandle(name=validate_collection_name(collection))

    async def shared_handle(self) -> CollectionHandle:
        """
        Return the process-wide handle of the shared collection.
        """
        if self._shared_handle is not None:
            return self._shared_handle

        async with self._shared_lock:
            if self._shared_handle is None:
                self._shared_handle = self.connect(self._shared_name)
                logger.info("Bound shared collection %s", self._shared_name)
            return self._shared_handle

    def isolated_handle(self) -> CollectionHandle:
        """
        Return a handle for a new, collision-free collection derived from
        the shared collection name.
        """
        return self.connect(f"{self._shared_name}-{uuid.uuid4().hex[:12]}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def upsert(
        self,
        chunks: Sequence[Chunk],
        handle: Optional[CollectionHandle] = None,
    ) -> int:
        """
        Embed chunks and write them to a collection, creating it if absent.

        Parameters
        ----------
        chunks : Sequence[Chunk]
            Chunks to write.

        handle : Optional[CollectionHandle]
            Target collection. Defaults to the shared collection.

        Returns
        -------
        int
            Number of chunks written; 0 for empty input.

        Raises
        ------
        ProviderFailure
            Embedding errors propagate unchanged, as do vector database
            errors.
        """
        if not chunks:
            return 0

        if handle is None:
            handle = await self.shared_handle()

        embeddings = await self._embedder.embed([c.content for c in chunks])
        await self._backend.ensure_collection(handle.name, len(embeddings[0]))
        added = await self._backend.add(handle.name, chunks, embeddings)

        logger.info("Upserted %d chunks into %s (%s)", added, handle.name, self._backend.name)
        return added

    async def search(
        self,
        handle: CollectionHandle,
        query: str,
        k: int = 5,
    ) -> List[RetrievedChunk]:
        """
        Return the k chunks most similar to the query, best first.
        """
        if k <= 0:
            return []

        query_emb = await self._embedder.embed_query(query)
        results = await self._backend.query(handle.name, query_emb, k)

        logger.debug("Search in %s returned %d chunks", handle.name, len(results))
        return results
