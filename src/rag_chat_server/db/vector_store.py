"""
Vector Store

PostgreSQL + pgvector based storage and similarity search for named chunk
collections.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncEngine

from ..embeddings.backend import VectorBackend
from ..embeddings.models import Chunk, RetrievedChunk
from .models import Base, ChunkEmbedding, RagCollection
from .session import create_session_factory, get_engine

logger = logging.getLogger("rag.pgvector")


class PgVectorStore(VectorBackend):
    """
    PostgreSQL-backed vector store using pgvector for cosine similarity.

    Collections are logical partitions of the ``rag_chunk`` table, registered
    in ``rag_collection`` on first write. The schema itself (extension and
    tables) is created lazily, once per process.
    """

    name = "pgvector"

    def __init__(self, engine: Optional[AsyncEngine] = None) -> None:
        """
        Parameters
        ----------
        engine : Optional[AsyncEngine]
            Engine to use. Defaults to the engine built from settings.
        """
        self._engine = engine or get_engine()
        self._session_factory = create_session_factory(self._engine)
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return

        async with self._schema_lock:
            if self._schema_ready:
                return
            async with self._engine.begin() as conn:
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
                await conn.run_sync(Base.metadata.create_all)
            self._schema_ready = True
            logger.info("pgvector schema ready")

    # ------------------------------------------------------------------
    # VectorBackend
    # ------------------------------------------------------------------

    async def collection_exists(self, collection: str) -> bool:
        await self._ensure_schema()
        async with self._session_factory() as session:
            result = await session.execute(
                select(RagCollection.name).where(RagCollection.name == collection)
            )
            return result.scalar_one_or_none() is not None

    async def ensure_collection(self, collection: str, dimensions: int) -> None:
        await self._ensure_schema()
        stmt = (
            pg_insert(RagCollection)
            .values(name=collection, dimensions=dimensions)
            .on_conflict_do_nothing(index_elements=["name"])
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()

        if result.rowcount:
            logger.info("Created collection %s (dim=%d)", collection, dimensions)

    async def add(
        self,
        collection: str,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        """
        Add chunk embeddings to a collection in a single transaction.

        Returns
        -------
        int
            Number of chunks added.
        """
        if len(chunks) != len(embeddings):
            raise ValueError("Embedding count does not match chunk count.")
        if not chunks:
            return 0

        async with self._session_factory() as session:
            session.add_all(
                ChunkEmbedding(
                    collection=collection,
                    content=chunk.content,
                    source=chunk.source,
                    metadata_=dict(chunk.metadata),
                    embedding=list(emb),
                )
                for chunk, emb in zip(chunks, embeddings)
            )
            await session.commit()

        return len(chunks)

    async def query(
        self,
        collection: str,
        embedding: Sequence[float],
        k: int,
    ) -> List[RetrievedChunk]:
        """
        Search a collection using cosine similarity.
        """
        if k <= 0:
            return []

        await self._ensure_schema()

        # pgvector's <=> operator
        cosine_distance = ChunkEmbedding.embedding.cosine_distance(list(embedding))

        stmt = (
            select(
                ChunkEmbedding.content,
                ChunkEmbedding.source,
                ChunkEmbedding.metadata_,
                (1 - cosine_distance).label("score"),
            )
            .where(ChunkEmbedding.collection == collection)
            .order_by(cosine_distance, ChunkEmbedding.id)
            .limit(k)
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            RetrievedChunk(
                content=row.content,
                metadata={"source": row.source, **(row.metadata_ or {})},
                score=float(row.score),
            )
            for row in rows
        ]

    async def close(self) -> None:
        await self._engine.dispose()
