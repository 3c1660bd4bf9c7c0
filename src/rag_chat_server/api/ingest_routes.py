"""
Ingest Routes

``POST /process`` accepts a multipart form with any of:

- ``inlineText``: pasted text
- ``pdf``: an uploaded PDF file (at most ``MAX_UPLOAD_BYTES``)
- ``youtubeUrl``: a video whose captions should be ingested

and returns the new session id with per-source diagnostics.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from .dependencies import get_ingestion_service
from ..config import settings
from ..core.errors import UploadTooLarge
from ..rag.ingest import IngestionService, discard_upload
from ..rag.models import IngestResult

router = APIRouter(tags=["ingest"])

logger = logging.getLogger("rag.api.ingest")

_READ_BLOCK = 1024 * 1024


# ---------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------

async def save_upload(upload: UploadFile, upload_dir: str, max_bytes: int) -> str:
    """
    Stream an upload into a temporary file under ``upload_dir``.

    Returns the temporary path. The caller owns the file afterwards.

    Raises
    ------
    UploadTooLarge
        If the upload exceeds ``max_bytes``. The partial file is removed.
    """
    Path(upload_dir).mkdir(parents=True, exist_ok=True)
    fd, path = tempfile.mkstemp(dir=upload_dir, suffix=".upload")

    size = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while True:
                block = await upload.read(_READ_BLOCK)
                if not block:
                    break
                size += len(block)
                if size > max_bytes:
                    raise UploadTooLarge(
                        f"Uploaded file exceeds the {max_bytes // (1024 * 1024)} MB limit"
                    )
                out.write(block)
    except BaseException:
        await discard_upload(path)
        raise

    return path


# ---------------------------------------------------------------------
# Ingest Route
# ---------------------------------------------------------------------

@router.post(
    "/process",
    response_model=IngestResult,
    summary="Ingest text, a PDF and/or a YouTube transcript",
    status_code=status.HTTP_200_OK,
)
async def process(
    service: Annotated[IngestionService, Depends(get_ingestion_service)],
    inline_text: Annotated[Optional[str], Form(alias="inlineText")] = None,
    youtube_url: Annotated[Optional[str], Form(alias="youtubeUrl")] = None,
    pdf: Annotated[Optional[UploadFile], File()] = None,
) -> IngestResult:
    """
    Normalize, chunk and index the submitted inputs and open a session.
    """
    has_file = pdf is not None and bool(pdf.filename)

    logger.info(
        "PROCESS fields: inline_len=%d youtube_url=%r file=%s",
        len(inline_text or ""),
        youtube_url or "",
        pdf.filename if has_file else None,
    )

    pdf_path = None
    if has_file:
        pdf_path = await save_upload(pdf, settings.upload_dir, settings.max_upload_bytes)

    return await service.ingest(
        inline_text=inline_text,
        pdf_path=pdf_path,
        pdf_filename=pdf.filename if has_file else None,
        youtube_url=youtube_url,
    )
