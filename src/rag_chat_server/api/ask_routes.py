"""
Ask Routes

``POST /ask`` answers a question against the corpus bound to a session.
Unknown session ids are rejected with 404 before any provider call.
"""

from fastapi import APIRouter, Depends, status
from typing import Annotated

from .models import AskRequest
from .dependencies import get_ask_service
from ..rag.ask import AskService
from ..rag.models import AnswerResult

router = APIRouter(tags=["ask"])


@router.post(
    "/ask",
    response_model=AnswerResult,
    summary="Ask a question about ingested content",
    status_code=status.HTTP_200_OK,
)
async def ask(
    req: AskRequest,
    service: Annotated[AskService, Depends(get_ask_service)],
) -> AnswerResult:
    # Error responses are rendered by the RagError handler in main.
    return await service.ask(req.session_id, req.query)
