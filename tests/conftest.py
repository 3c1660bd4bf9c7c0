import re
import zlib
from typing import List, Sequence

import pytest

from rag_chat_server.embeddings.chunker import Chunker
from rag_chat_server.embeddings.gateway import IndexGateway
from rag_chat_server.embeddings.registry import FaissCollectionStore
from rag_chat_server.sessions.store import InMemorySessionStore

FAKE_DIM = 256
_TOKEN = re.compile(r"[a-z0-9]+")


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder. Texts sharing words get similar
    vectors; identical texts get identical vectors.
    """

    def __init__(self, dim: int = FAKE_DIM) -> None:
        self.dim = dim
        self.calls: List[List[str]] = []

    def _vector(self, text: str) -> List[float]:
        vec = [0.0] * self.dim
        vec[0] = 0.1
        for token in _TOKEN.findall(text.lower()):
            vec[1 + zlib.crc32(token.encode()) % (self.dim - 1)] += 1.0
        return vec

    async def embed(self, texts: Sequence[str], batch_size: int = 64) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]

    async def embed_query(self, text: str) -> List[float]:
        return (await self.embed([text]))[0]


class FakeTranscriptFetcher:
    """Stands in for TranscriptFetcher; records which passes ran."""

    def __init__(self, preferred="", any_track="", fail_preferred=False, fail_any=False):
        self.preferred = preferred
        self.any_track = any_track
        self.fail_preferred = fail_preferred
        self.fail_any = fail_any
        self.calls: List[str] = []

    def fetch_preferred(self, video_id: str, language: str) -> str:
        self.calls.append(f"preferred:{language}")
        if self.fail_preferred:
            raise RuntimeError("Subtitles are disabled for this video")
        return self.preferred

    def fetch_any(self, video_id: str) -> str:
        self.calls.append("any")
        if self.fail_any:
            raise RuntimeError("No transcripts were found")
        return self.any_track


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def faiss_store(tmp_path):
    return FaissCollectionStore(data_root=str(tmp_path / "faiss"))


@pytest.fixture
def gateway(fake_embedder, faiss_store):
    return IndexGateway(fake_embedder, faiss_store, shared_collection="testShared")


@pytest.fixture
def chunker():
    return Chunker(800, 160)


@pytest.fixture
def sessions():
    return InMemorySessionStore()
