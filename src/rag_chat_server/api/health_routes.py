from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_session_store
from .models import HealthResponse
from ..config import settings
from ..sessions.store import SessionStore

router = APIRouter(tags=["health"])

@router.get("/health", response_model=HealthResponse)
def health(sessions: Annotated[SessionStore, Depends(get_session_store)]) -> HealthResponse:
    return HealthResponse(
        status="ok",
        vector_backend=settings.vector_backend,
        collection_mode=settings.collection_mode,
        sessions=len(sessions),
    )
