"""
Database Session Management

Provides the async SQLAlchemy engine and session factory for the pgvector
backend. Both are built on first use so the FAISS backend never needs a
database driver.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

from ..config import settings


def resolve_database_url(url: str, password: Optional[str] = None) -> URL:
    """
    Parse the vector database URL, applying a separately configured
    password when one is given.
    """
    parsed = make_url(url)
    if password:
        parsed = parsed.set(password=password)
    return parsed


def create_engine(url: Optional[str] = None, password: Optional[str] = None) -> AsyncEngine:
    if url is None:
        url = settings.database_url
        if password is None and settings.database_password is not None:
            password = settings.database_password.get_secret_value()

    return create_async_engine(
        resolve_database_url(url, password),
        echo=False,  # Set True for SQL debugging
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@lru_cache
def get_engine() -> AsyncEngine:
    return create_engine()
