"""
FAISS Vector Index

This module implements a persistent FAISS-backed index holding the chunks of
one collection.

Key Properties
--------------
- Explicit ID management via IndexIDMap2
- Cosine similarity (inner product over L2-normalized vectors)
- Index and chunk metadata persisted side by side
- Thread-safe (re-entrant lock), so calls may run in worker threads
"""

from __future__ import annotations

import json
from pathlib import Path
from threading import RLock
from typing import List, Tuple, Dict, Optional, Sequence

import faiss
import numpy as np

from .models import Chunk
from ..core.errors import ProviderFailure


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class FaissIndexError(ProviderFailure):
    """Base error for FAISS index failures."""


class FaissPersistenceError(FaissIndexError):
    """Raised when index persistence fails."""


# ---------------------------------------------------------------------
# FAISS Index Wrapper
# ---------------------------------------------------------------------

class FaissIndex:
    """
    Persistent FAISS index with explicit ID mapping.

    Every public method takes the internal lock, so one instance can be
    shared by concurrent worker threads.
    """

    def __init__(self, index_path: str, meta_path: str) -> None:
        """
        Initialize a FAISS index wrapper.

        Parameters
        ----------
        index_path : str
            Filesystem path to persist the FAISS index.

        meta_path : str
            Filesystem path to persist metadata (chunk map + next_id).
        """
        self._index_path = index_path
        self._meta_path = meta_path

        self._index: Optional[faiss.IndexIDMap2] = None
        self._chunk_map: Dict[int, Chunk] = {}
        self._next_id: int = 0

        self._lock = RLock()

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _init_index(self, dim: int) -> None:
        """
        Initialize a new cosine-similarity FAISS index.
        """
        base = faiss.IndexFlatIP(dim)
        self._index = faiss.IndexIDMap2(base)

    def _validate_embeddings(
        self,
        embeddings: Sequence[Sequence[float]],
        chunks: Sequence[Chunk],
    ) -> None:
        if not embeddings:
            raise FaissIndexError("Cannot add empty embedding list.")

        if len(embeddings) != len(chunks):
            raise ValueError("Embedding count does not match chunk count.")

        dim = len(embeddings[0])
        if dim == 0:
            raise FaissIndexError("Embedding vectors must be non-empty.")

        for i, emb in enumerate(embeddings):
            if len(emb) != dim:
                raise FaissIndexError(
                    f"Inconsistent embedding dimensionality at index {i}."
                )

        if self._index is not None and self._index.d != dim:
            raise FaissIndexError(
                f"Embedding dimensionality {dim} does not match index ({self._index.d})."
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_chunks(
        self,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        """
        Add chunks and their embeddings to the index.

        This operation is atomic with respect to the in-memory index and map.
        """
        if not chunks:
            return 0

        with self._lock:
            self._validate_embeddings(embeddings, chunks)

            if self._index is None:
                self._init_index(len(embeddings[0]))

            ids = np.arange(
                self._next_id,
                self._next_id + len(chunks),
                dtype="int64",
            )

            vectors = np.asarray(embeddings, dtype="float32")
            faiss.normalize_L2(vectors)

            try:
                self._index.add_with_ids(vectors, ids)
            except Exception as exc:
                raise FaissIndexError(
                    f"Failed to add vectors to FAISS: {type(exc).__name__}"
                ) from exc

            self._next_id += len(chunks)
            for i, chunk in zip(ids, chunks):
                self._chunk_map[int(i)] = chunk

            return len(chunks)

    def search(
        self,
        query_emb: Sequence[float],
        k: int = 5,
    ) -> List[Tuple[Chunk, float]]:
        """
        Search the index using a query embedding.

        Returns ranked (chunk, score) tuples, best first.
        """
        with self._lock:
            if self._index is None or not self._chunk_map or k <= 0:
                return []

            q = np.asarray([query_emb], dtype="float32")
            if q.shape[1] != self._index.d:
                raise FaissIndexError(
                    f"Query dimensionality {q.shape[1]} does not match index ({self._index.d})."
                )
            faiss.normalize_L2(q)

            scores, idxs = self._index.search(q, k)

            results: List[Tuple[Chunk, float]] = []

            for score, idx in zip(scores[0], idxs[0]):
                idx = int(idx)
                if idx == -1:
                    continue

                chunk = self._chunk_map.get(idx)
                if chunk is None:
                    continue

                results.append((chunk, float(score)))

            return results

    def __len__(self) -> int:
        with self._lock:
            return self._index.ntotal if self._index is not None else 0

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        """
        Persist both FAISS index and metadata to disk.
        """
        with self._lock:
            if self._index is None:
                return

            index_path = Path(self._index_path)
            meta_path = Path(self._meta_path)

            index_path.parent.mkdir(parents=True, exist_ok=True)

            try:
                faiss.write_index(self._index, str(index_path))
            except Exception as exc:
                raise FaissPersistenceError(
                    f"Failed to write FAISS index: {type(exc).__name__}"
                ) from exc

            meta = {
                "next_id": self._next_id,
                "chunk_map": {
                    str(k): v.model_dump()
                    for k, v in self._chunk_map.items()
                },
            }

            try:
                meta_path.parent.mkdir(parents=True, exist_ok=True)
                with meta_path.open("w", encoding="utf-8") as f:
                    json.dump(meta, f)
            except Exception as exc:
                raise FaissPersistenceError(
                    f"Failed to write FAISS metadata: {type(exc).__name__}"
                ) from exc

    def load(self) -> None:
        """
        Load index and metadata from disk if available.
        """
        with self._lock:
            index_path = Path(self._index_path)
            meta_path = Path(self._meta_path)

            if not index_path.exists():
                return

            try:
                self._index = faiss.read_index(str(index_path))
            except Exception as exc:
                raise FaissPersistenceError(
                    f"Failed to read FAISS index: {type(exc).__name__}"
                ) from exc

            if not meta_path.exists():
                self._chunk_map.clear()
                self._next_id = 0
                return

            try:
                with meta_path.open("r", encoding="utf-8") as f:
                    data = json.load(f)

                self._next_id = int(data.get("next_id", 0))
                raw_map = data.get("chunk_map", {})

                self._chunk_map = {
                    int(k): Chunk(**v)
                    for k, v in raw_map.items()
                }
            except Exception as exc:
                raise FaissPersistenceError(
                    f"Failed to load FAISS metadata: {type(exc).__name__}"
                ) from exc
