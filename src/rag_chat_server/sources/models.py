"""
Source Data Models

A normalized source is either a document with text (`Extracted`) or a
diagnostic placeholder (`SoftFailure`) for an input that could not be read.
Downstream code branches on the type, never on empty content.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


INLINE_SOURCE = "inline"
DEFAULT_PDF_NAME = "upload.pdf"


class SourceDocument(BaseModel):
    """
    Text content plus provenance for one ingested input.
    """

    content: str
    source: str = Field(..., min_length=1)
    note: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def metadata(self) -> Dict[str, Any]:
        """Metadata copied onto every chunk cut from this document."""
        meta: Dict[str, Any] = dict(self.extra)
        meta["source"] = self.source
        if self.note is not None:
            meta["note"] = self.note
        return meta

    @property
    def has_content(self) -> bool:
        return bool(self.content.strip())


class Extracted(BaseModel):
    kind: Literal["extracted"] = "extracted"
    document: SourceDocument

    model_config = ConfigDict(frozen=True)

    @property
    def source(self) -> str:
        return self.document.source

    @property
    def note(self) -> Optional[str]:
        return self.document.note

    @property
    def has_content(self) -> bool:
        return self.document.has_content


class SoftFailure(BaseModel):
    kind: Literal["soft_failure"] = "soft_failure"
    source: str
    note: str

    model_config = ConfigDict(frozen=True)

    @property
    def has_content(self) -> bool:
        return False


SourceResult = Union[Extracted, SoftFailure]
