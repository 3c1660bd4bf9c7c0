"""
Vector backend contract.

The index gateway talks to the vector database only through this interface.
Two implementations exist:

- `PgVectorStore` (``VECTOR_BACKEND=pgvector``): PostgreSQL + pgvector.
- `FaissCollectionStore` (``VECTOR_BACKEND=faiss``): one persisted FAISS
  index per collection on local disk.

All methods are async so network-backed stores never block the event loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from .models import Chunk, RetrievedChunk


class VectorBackend(ABC):
    """Storage and similarity search over named collections."""

    name: str = "abstract"

    @abstractmethod
    async def collection_exists(self, collection: str) -> bool:
        """Return True once the collection has been created by a write."""

    @abstractmethod
    async def ensure_collection(self, collection: str, dimensions: int) -> None:
        """Create the collection if it does not exist yet. Idempotent."""

    @abstractmethod
    async def add(
        self,
        collection: str,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        """
        Store chunks with their embeddings, positionally paired.

        Returns the number of chunks written.

        Raises
        ------
        ValueError
            If ``len(chunks) != len(embeddings)``.
        """

    @abstractmethod
    async def query(
        self,
        collection: str,
        embedding: Sequence[float],
        k: int,
    ) -> List[RetrievedChunk]:
        """
        Return up to k stored chunks ordered by decreasing cosine similarity.
        A collection that does not exist yields an empty list.
        """

    async def close(self) -> None:
        """Release connections held by the backend."""
