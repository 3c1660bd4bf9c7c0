"""
Session Store

Maps opaque session ids to the collection handle produced by an ingest call,
so later questions are answered against the right corpus.

Design choices
--------------
- `SessionStore` is the abstract contract (`create` / `lookup`); an external
  key-value store can implement it for multi-process deployments.
- `InMemorySessionStore` keeps sessions in process memory only. A restart
  invalidates every session id.
- Eviction is explicit: an optional idle TTL and a maximum session count
  (least recently used sessions are evicted first).
- Thread-safe access using a re-entrant lock.
- Global singleton `session_store` for typical application use, while still
  allowing custom instances to be created for tests.
"""

from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Optional

from ..config import settings
from ..core.errors import InvalidSession
from ..embeddings.models import CollectionHandle

logger = logging.getLogger("rag.sessions")


def new_session_id() -> str:
    """
    Return a fresh session id: a millisecond timestamp plus 48 random bits.
    """
    return f"s_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


@dataclass
class SessionRecord:
    session_id: str
    handle: CollectionHandle
    created_at: float
    last_access: float


class SessionStore(ABC):
    """Contract for session registries."""

    @abstractmethod
    def create(self, handle: CollectionHandle) -> str:
        """Record a new session bound to ``handle`` and return its id."""

    @abstractmethod
    def lookup(self, session_id: str) -> CollectionHandle:
        """
        Return the handle bound to a session.

        Raises
        ------
        InvalidSession
            If the id is unknown or the session was evicted.
        """

    @abstractmethod
    def __len__(self) -> int:
        """Return the number of live sessions."""


class InMemorySessionStore(SessionStore):
    """
    In-memory store mapping session ids to collection handles.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_sessions: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize a new InMemorySessionStore.

        Parameters
        ----------
        ttl_seconds : Optional[float]
            Idle time after which a session expires. None disables expiry.

        max_sessions : Optional[int]
            Upper bound on stored sessions. When exceeded, the least
            recently used session is evicted. None means unbounded.

        clock : Callable[[], float]
            Monotonic time source, injectable for tests.
        """
        self._store: "OrderedDict[str, SessionRecord]" = OrderedDict()
        self._lock = RLock()
        self._ttl = ttl_seconds
        self._max_sessions = max_sessions
        self._clock = clock

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def create(self, handle: CollectionHandle) -> str:
        with self._lock:
            session_id = new_session_id()
            while session_id in self._store:
                session_id = new_session_id()

            now = self._clock()
            self._store[session_id] = SessionRecord(
                session_id=session_id,
                handle=handle,
                created_at=now,
                last_access=now,
            )
            self._evict(now)

        logger.info("Created session %s bound to %s", session_id, handle.name)
        return session_id

    def lookup(self, session_id: str) -> CollectionHandle:
        with self._lock:
            record = self._store.get(session_id)
            if record is None:
                raise InvalidSession()

            now = self._clock()
            if self._is_expired(record, now):
                del self._store[session_id]
                logger.info("Session %s expired", session_id)
                raise InvalidSession()

            record.last_access = now
            self._store.move_to_end(session_id)
            return record.handle

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def _is_expired(self, record: SessionRecord, now: float) -> bool:
        return self._ttl is not None and now - record.last_access > self._ttl

    def _evict(self, now: float) -> None:
        if self._ttl is not None:
            expired = [sid for sid, rec in self._store.items() if self._is_expired(rec, now)]
            for sid in expired:
                del self._store[sid]

        if self._max_sessions is not None and self._max_sessions > 0:
            while len(self._store) > self._max_sessions:
                sid, _ = self._store.popitem(last=False)
                logger.debug("Evicted least recently used session %s", sid)

    # ------------------------------------------------------------------
    # Utility operations
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        """
        Remove all sessions, as a process restart would.

        Intended primarily for test setup/teardown or administrative resets.
        """
        with self._lock:
            self._store.clear()

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._store

    def __len__(self) -> int:
        """
        Return the number of stored sessions.
        """
        with self._lock:
            return len(self._store)


# Global singleton used by the application.
session_store = InMemorySessionStore(
    ttl_seconds=settings.session_ttl_seconds,
    max_sessions=settings.max_sessions,
)
