"""
RAG Chat Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures logging and exception handling, and provides a test-friendly
application factory.

Design Goals
------------
- Explicit dependency initialization order
- Centralized router registration
- Errors rendered as ``{"error": ...}`` JSON everywhere
- Test-friendly via create_app()
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .core.errors import (
    RagError,
    rag_error_handler,
    unhandled_exception_handler,
    validation_error_handler,
)
from .api import (
    ask_routes,
    health_routes,
    ingest_routes,
)
from .api.dependencies import get_vector_backend


logger = logging.getLogger("rag.app")


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the process.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------

@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup checks and shutdown cleanup.

    A missing OpenAI key is only warned about here; embedding and LLM calls
    fail with MisconfiguredProvider when they are attempted.
    """
    logger.info(
        "Starting rag-chat-server (backend=%s, collection=%s, mode=%s)",
        settings.vector_backend,
        settings.collection_name,
        settings.collection_mode,
    )

    if not settings.openai_key():
        logger.warning("OPENAI_API_KEY not set: embeddings and LLM calls will fail at runtime.")

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    yield

    logger.info("Shutting down rag-chat-server")
    if get_vector_backend.cache_info().currsize:
        await get_vector_backend().close()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory pattern allows:
    - Clean test instantiation
    - Controlled dependency overrides in pytest

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="rag-chat-server",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(RagError, rag_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(ingest_routes.router)
    app.include_router(ask_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()


def run() -> None:
    """Console entry point: serve the default app with uvicorn."""
    import uvicorn

    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
