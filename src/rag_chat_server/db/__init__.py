"""
Database Package

Provides SQLAlchemy async session management and model definitions
for the PostgreSQL + pgvector vector backend.
"""

from .session import create_engine, create_session_factory, get_engine, resolve_database_url
from .models import Base, RagCollection, ChunkEmbedding
from .vector_store import PgVectorStore

__all__ = [
    "create_engine",
    "create_session_factory",
    "get_engine",
    "resolve_database_url",
    "Base",
    "RagCollection",
    "ChunkEmbedding",
    "PgVectorStore",
]
