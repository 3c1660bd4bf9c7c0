"""
Embedding Data Models

This module defines the canonical records that flow through the index
gateway:

- `Chunk`: one bounded slice of a source document, the unit of embedding.
- `RetrievedChunk`: a chunk returned by similarity search, with its score.
- `CollectionHandle`: a reference to a named collection in the vector store.

Each chunk corresponds to ONE embedding vector in ONE collection.
"""

from __future__ import annotations

import re
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Chunk(BaseModel):
    """
    A single chunk of document text awaiting embedding.

    ``metadata`` is a copy of the source document metadata (``source`` and
    optionally ``note``) plus ``chunk_index`` and ``document_index``.
    """

    content: str = Field(
        ...,
        min_length=1,
        description="Raw text content for this chunk.",
    )

    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Provenance metadata inherited from the source document.",
    )

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )

    @property
    def source(self) -> str:
        return str(self.metadata.get("source") or "unknown")


class RetrievedChunk(BaseModel):
    """
    A stored chunk returned by similarity search.
    """

    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    score: float

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def source(self) -> str:
        return str(self.metadata.get("source") or "unknown")


class InvalidCollectionError(ValueError):
    """Raised when a collection name is missing or malformed."""


COLLECTION_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


def validate_collection_name(name: str) -> str:
    """
    Validate a collection name. Names double as directory names for the
    FAISS backend, so path-like values are rejected.
    """
    if not name or not isinstance(name, str):
        raise InvalidCollectionError("collection name is required")

    name = name.strip()
    if not COLLECTION_NAME_PATTERN.match(name):
        raise InvalidCollectionError(
            f"Invalid collection name '{name}': must be 1-64 alphanumeric chars, hyphens, or underscores"
        )
    return name


class CollectionHandle(BaseModel):
    """
    Reference to a named collection. Holding a handle does not imply the
    collection exists yet; it is created on first write.
    """

    name: str = Field(..., min_length=1, max_length=64)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return validate_collection_name(v)
