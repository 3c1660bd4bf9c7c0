from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from ..config import settings
from ..embeddings.backend import VectorBackend
from ..embeddings.chunker import Chunker
from ..embeddings.embedder import Embedder
from ..embeddings.gateway import IndexGateway
from ..embeddings.registry import FaissCollectionStore
from ..llm.client import LLMClient
from ..rag.answer import AnswerEngine
from ..rag.ask import AskService
from ..rag.ingest import IngestionService
from ..sessions.store import SessionStore, session_store


@lru_cache
def get_embedder() -> Embedder:
    return Embedder()


@lru_cache
def get_vector_backend() -> VectorBackend:
    if settings.vector_backend == "faiss":
        return FaissCollectionStore()

    # Imported lazily so the FAISS backend never loads the database driver.
    from ..db import PgVectorStore
    return PgVectorStore()


@lru_cache
def get_index_gateway() -> IndexGateway:
    return IndexGateway(get_embedder(), get_vector_backend())


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient()


@lru_cache
def get_chunker() -> Chunker:
    return Chunker(settings.chunk_size, settings.chunk_overlap)


def get_session_store() -> SessionStore:
    return session_store


def get_answer_engine(
    gateway: Annotated[IndexGateway, Depends(get_index_gateway)],
    llm: Annotated[LLMClient, Depends(get_llm_client)],
) -> AnswerEngine:
    return AnswerEngine(gateway, llm)


def get_ingestion_service(
    gateway: Annotated[IndexGateway, Depends(get_index_gateway)],
    chunker: Annotated[Chunker, Depends(get_chunker)],
    sessions: Annotated[SessionStore, Depends(get_session_store)],
) -> IngestionService:
    return IngestionService(gateway, chunker, sessions)


def get_ask_service(
    sessions: Annotated[SessionStore, Depends(get_session_store)],
    engine: Annotated[AnswerEngine, Depends(get_answer_engine)],
) -> AskService:
    return AskService(sessions, engine)
