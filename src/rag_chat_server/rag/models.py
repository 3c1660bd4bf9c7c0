"""
Pipeline Result Models

Results returned by the ingestion and answering pipeline. Field names follow
Python conventions; the wire names used by the HTTP API (``sessionId``,
``hasContent``) are declared as serialization aliases.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceSnippet(BaseModel):
    """
    A retrieved chunk cited by an answer.
    """
    source: str
    snippet: str

    model_config = ConfigDict(extra="forbid")


class AnswerResult(BaseModel):
    """
    Grounded answer plus the chunks it was built from, in retrieval order.
    """
    text: str
    sources: List[SourceSnippet] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class SourceSummary(BaseModel):
    """
    Per-input outcome of an ingest request.
    """
    source: str
    note: Optional[str] = None
    has_content: bool = Field(..., serialization_alias="hasContent")

    model_config = ConfigDict(extra="forbid")


class IngestResult(BaseModel):
    """
    Outcome of a successful ingest request.
    """
    session_id: str = Field(..., serialization_alias="sessionId")
    chunks: int = Field(..., ge=0)
    added: int = Field(..., ge=0)
    sources: List[SourceSummary] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")
