"""
API Models

Request and auxiliary response models for the HTTP layer. Pipeline results
(`IngestResult`, `AnswerResult`) are served directly as response models.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AskRequest(BaseModel):
    """
    Question against an existing session. Both fields are required; their
    presence is checked by the ask service so a missing field yields a
    plain 400 error.
    """
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    query: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class HealthResponse(BaseModel):
    status: str
    vector_backend: str
    collection_mode: str
    sessions: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid")
