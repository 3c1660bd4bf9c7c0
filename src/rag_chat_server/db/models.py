"""
SQLAlchemy Models

Defines the pgvector schema for named collections of embedded chunks:
- RagCollection: one row per collection, inserted on first write
- ChunkEmbedding: chunk text, metadata and embedding vector
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from pgvector.sqlalchemy import Vector

from ..config import settings


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Collection Model
# ---------------------------------------------------------------------

class RagCollection(Base):
    """
    A named collection of chunks.
    """
    __tablename__ = "rag_collection"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    dimensions: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )


# ---------------------------------------------------------------------
# Chunk Embedding Model
# ---------------------------------------------------------------------

class ChunkEmbedding(Base):
    """
    One embedded chunk. Uses pgvector for similarity search.
    """
    __tablename__ = "rag_chunk"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("rag_collection.name", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[Optional[dict]] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    # 1536 dimensions for text-embedding-3-small by default
    embedding = Column(Vector(settings.embedding_dimensions), nullable=False)

    __table_args__ = (
        Index("idx_chunk_collection", "collection"),
    )
