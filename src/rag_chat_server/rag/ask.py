"""
Ask Service

Answers a question within an existing session. The session is resolved
before any provider is touched, so an unknown id costs no embedding or LLM
call.
"""

from __future__ import annotations

from typing import Optional

from ..config import settings
from ..core.errors import InvalidRequest
from ..sessions.store import SessionStore
from .answer import AnswerEngine
from .models import AnswerResult


class AskService:
    def __init__(
        self,
        sessions: SessionStore,
        engine: AnswerEngine,
        k: Optional[int] = None,
    ) -> None:
        self._sessions = sessions
        self._engine = engine
        self.k = k or settings.retrieval_k

    async def ask(self, session_id: Optional[str], query: Optional[str]) -> AnswerResult:
        """
        Raises
        ------
        InvalidRequest
            If either field is missing or blank.

        InvalidSession
            If the session id is unknown or expired.
        """
        if not session_id or not query or not query.strip():
            raise InvalidRequest("sessionId and query are required")

        handle = self._sessions.lookup(session_id)
        return await self._engine.answer(handle, query, self.k)
