"""
Embedding Client

This module implements a robust, test-friendly embedding client that uses the
OpenAI embeddings API (or any compatible provider). It is responsible for:

- Efficient batching of text inputs
- Network and transport error isolation
- Strict response validation
- Deterministic output ordering for the vector backends

The class is stateless and safe to reuse across requests.
"""

from __future__ import annotations

from typing import List, Sequence, Optional
import logging
import httpx

from ..config import settings
from ..core.errors import MisconfiguredProvider, ProviderFailure

logger = logging.getLogger("rag.embedder")


class EmbeddingError(ProviderFailure):
    """Raised when embedding generation fails."""


class Embedder:
    """
    Asynchronous embedding generator for batches of text.

    This class performs no caching; the vector database is the only durable
    copy of any vector.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        api_key : Optional[str]
            Optional override for the OpenAI API key. Defaults to
            settings.openai_api_key. A missing key is only reported when
            `embed` is called.

        model : Optional[str]
            Optional override for embedding model. Defaults to settings.embedding_model.

        dimensions : Optional[int]
            Requested vector size. Defaults to settings.embedding_dimensions.

        base_url : Optional[str]
            Base URL of the OpenAI-compatible API.

        timeout : float
            HTTP timeout for each request.
        """
        self.api_key = api_key if api_key is not None else settings.openai_key()
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimensions
        self.base_url = (base_url or settings.openai_base_url).rstrip("/") + "/embeddings"
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(
        self,
        texts: Sequence[str],
        batch_size: int = 64,
    ) -> List[List[float]]:
        """
        Generate embeddings for a sequence of input texts.

        Parameters
        ----------
        texts : Sequence[str]
            List or sequence of input text strings.

        batch_size : int
            Maximum batch size per request. Helps avoid API token/size limits.

        Returns
        -------
        List[List[float]]
            One embedding per input text, in input order.

        Raises
        ------
        MisconfiguredProvider
            If no API key is configured. Raised before any network call.

        EmbeddingError
            If any batch fails or the response is malformed.
        """
        if not texts:
            return []

        if not self.api_key:
            raise MisconfiguredProvider("Missing OPENAI_API_KEY")

        all_embeddings: List[List[float]] = []
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for start in range(0, len(texts), batch_size):
                batch = list(texts[start : start + batch_size])
                payload = {
                    "model": self.model,
                    "input": batch,
                    "dimensions": self.dimensions,
                }

                try:
                    response = await client.post(
                        self.base_url,
                        json=payload,
                        headers=headers,
                    )
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.error(
                        "Embedding request failed (%s): batch size=%d, error=%s",
                        type(exc).__name__,
                        len(batch),
                        str(exc),
                    )
                    raise EmbeddingError(
                        f"Embedding generation failed: {type(exc).__name__}"
                    ) from exc

                embeddings = self._extract_embeddings(response.json())
                if len(embeddings) != len(batch):
                    raise EmbeddingError(
                        f"Embedding count mismatch: sent {len(batch)}, got {len(embeddings)}"
                    )
                all_embeddings.extend(embeddings)

        return all_embeddings

    async def embed_query(self, text: str) -> List[float]:
        """Embed a single query string."""
        return (await self.embed([text]))[0]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_embeddings(data: dict) -> List[List[float]]:
        """
        Parse and validate embedding output format.

        OpenAI returns:
            { "data": [ {"index": 0, "embedding": [...]}, ... ] }

        Records are re-ordered by ``index`` when present.

        Raises
        ------
        EmbeddingError
            If the API returns unexpected structure.
        """
        if "data" not in data:
            raise EmbeddingError("Embedding response missing 'data' field.")

        records = data["data"]
        if not isinstance(records, list):
            raise EmbeddingError("'data' field must be a list.")

        if all(isinstance(r, dict) and isinstance(r.get("index"), int) for r in records):
            records = sorted(records, key=lambda r: r["index"])

        embeddings: List[List[float]] = []

        for index, record in enumerate(records):
            if not isinstance(record, dict) or "embedding" not in record:
                raise EmbeddingError(
                    f"Malformed embedding record at index {index}: {record!r}"
                )

            emb = record["embedding"]
            if not isinstance(emb, list) or not all(
                isinstance(x, (float, int)) for x in emb
            ):
                raise EmbeddingError(
                    f"Invalid embedding vector at index {index}: must be float list."
                )

            embeddings.append([float(x) for x in emb])

        return embeddings
