"""
Error Taxonomy and Global Error Handling

This module defines the application-level exception hierarchy used across the
ingestion and answering pipeline, and the FastAPI handlers that render those
exceptions as JSON responses.

Propagation Policy
------------------
- Per-source extraction failures (`ExtractionFailure`, `CaptionUnavailable`)
  are recovered locally by the source normalizer and never reach a handler.
- `NoExtractableContent` is the only fatal input-side condition of an ingest.
- Provider failures (embedding, vector database, language model) are not
  retried and surface as server errors.
- Every error response carries an ``error`` message string.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("rag.errors")


# ---------------------------------------------------------------------
# Exception Hierarchy
# ---------------------------------------------------------------------

class RagError(Exception):
    """Base class for all pipeline errors that map to an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class InvalidRequest(RagError):
    """Raised when required request fields are missing or malformed."""

    status_code = 400


class SourceUnavailable(RagError):
    """Raised when an uploaded file cannot be accessed on disk."""


class ExtractionFailure(RagError):
    """Raised when PDF text extraction fails. Recovered as a soft failure."""


class CaptionUnavailable(RagError):
    """Raised when no caption track yields text. Recovered as a soft failure."""


class NoExtractableContent(RagError):
    """Raised when no input of an ingest request produced any text."""

    status_code = 400

    def __init__(self, message: str, notes: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.notes = list(notes or [])

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "notes": self.notes}


class MisconfiguredProvider(RagError):
    """Raised when a provider credential is missing, before any network call."""


class InvalidSession(RagError):
    """Raised when a session id is unknown or has been evicted."""

    status_code = 404

    def __init__(self, message: str = "Invalid or expired sessionId") -> None:
        super().__init__(message)


class ProviderFailure(RagError):
    """Raised when an embedding, vector database or LLM call fails."""


class UploadTooLarge(RagError):
    """Raised when an uploaded file exceeds the configured size limit."""

    status_code = 413


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def rag_error_handler(request: Request, exc: RagError) -> JSONResponse:
    """
    Render a RagError using its own status code and payload.

    Client errors are logged at INFO, server-side errors at ERROR with the
    traceback attached.
    """
    if exc.status_code >= 500:
        logger.error(
            "Request failed: %s %s (%s)",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc_info=exc,
        )
    else:
        logger.info(
            "Request rejected: %s %s -> %d %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )

    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Render request validation failures as 400 responses in the common
    ``{error, details}`` shape.
    """
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.info(
        "Request validation failed: %s %s (%d errors)",
        request.method,
        request.url.path,
        len(details),
    )
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": details},
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    This handler is registered with FastAPI as the final safety net for any
    exception not otherwise handled by route-level or framework-level
    handlers.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a 500 response whose ``error`` field carries the causing
      message, so callers can see which provider failed.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": str(exc) or type(exc).__name__,
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
