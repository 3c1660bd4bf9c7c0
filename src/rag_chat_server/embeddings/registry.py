"""
FAISS Collection Registry

Backs the `VectorBackend` contract with one FAISS index per collection,
persisted under ``<data_root>/<collection>/``.

Thread Safety
-------------
- The registry is protected by an RLock
- Individual FaissIndex instances have their own locks
- Blocking FAISS and file I/O run in worker threads via asyncio.to_thread
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Sequence

from .backend import VectorBackend
from .index import FaissIndex
from .models import Chunk, RetrievedChunk, validate_collection_name
from ..config import settings

logger = logging.getLogger("rag.faiss")

INDEX_FILENAME = "faiss_index.bin"
META_FILENAME = "index_meta.json"


class FaissCollectionStore(VectorBackend):
    """
    On-disk FAISS vector store keyed by collection name.
    """

    name = "faiss"

    def __init__(self, data_root: Optional[str] = None) -> None:
        self._root = Path(data_root or settings.faiss_data_dir)
        self._indexes: Dict[str, FaissIndex] = {}
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Path Utilities
    # ------------------------------------------------------------------

    def collection_path(self, collection: str) -> Path:
        """
        Data directory for a collection. Raises InvalidCollectionError for
        names that could escape the data root.
        """
        return self._root / validate_collection_name(collection)

    def _get_index(self, collection: str, create: bool) -> Optional[FaissIndex]:
        """
        Get the loaded index for a collection, loading it from disk on first
        use. With ``create=False`` a collection without a directory yields None.
        """
        with self._lock:
            if collection in self._indexes:
                return self._indexes[collection]

            path = self.collection_path(collection)
            if not path.is_dir():
                if not create:
                    return None
                path.mkdir(parents=True, exist_ok=True)

            index = FaissIndex(
                index_path=str(path / INDEX_FILENAME),
                meta_path=str(path / META_FILENAME),
            )
            index.load()

            self._indexes[collection] = index
            return index

    # ------------------------------------------------------------------
    # VectorBackend
    # ------------------------------------------------------------------

    async def collection_exists(self, collection: str) -> bool:
        with self._lock:
            if collection in self._indexes:
                return True
        return await asyncio.to_thread(self.collection_path(collection).is_dir)

    async def ensure_collection(self, collection: str, dimensions: int) -> None:
        created = not await self.collection_exists(collection)
        await asyncio.to_thread(self._get_index, collection, True)
        if created:
            logger.info("Created FAISS collection %s (dim=%d)", collection, dimensions)

    async def add(
        self,
        collection: str,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        if len(chunks) != len(embeddings):
            raise ValueError("Embedding count does not match chunk count.")
        if not chunks:
            return 0

        def _write() -> int:
            index = self._get_index(collection, True)
            added = index.add_chunks(chunks, embeddings)
            index.save()
            return added

        return await asyncio.to_thread(_write)

    async def query(
        self,
        collection: str,
        embedding: Sequence[float],
        k: int,
    ) -> List[RetrievedChunk]:
        def _search() -> List[RetrievedChunk]:
            index = self._get_index(collection, False)
            if index is None:
                return []
            return [
                RetrievedChunk(content=chunk.content, metadata=dict(chunk.metadata), score=score)
                for chunk, score in index.search(embedding, k)
            ]

        return await asyncio.to_thread(_search)

    # ------------------------------------------------------------------
    # Utility operations
    # ------------------------------------------------------------------

    def loaded_collections(self) -> List[str]:
        """
        Return the names of collections currently loaded in memory.
        """
        with self._lock:
            return list(self._indexes.keys())
