"""
Retrieval-Answer Engine

Answers a question against one collection:

1. Retrieve the top-k chunks through the index gateway.
2. Assemble a bounded context of labeled ``# Doc <i> (source: ...)`` blocks.
3. Ask the language model once, with a system instruction restricting it to
   that context.
4. Cite every retrieved chunk, in retrieval order, as ``{source, snippet}``.

Context Bounds
--------------
Each block carries at most ``CONTEXT_CHARS_PER_DOC`` characters of its chunk,
and blocks stop being added once the next one would push the context past
``MAX_CONTEXT_CHARS``. The first block is always included (truncated to the
budget if needed).
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, Sequence

from ..config import settings
from ..embeddings.gateway import IndexGateway
from ..embeddings.models import CollectionHandle, RetrievedChunk
from ..llm.client import LLMClient
from ..prompts import ANSWER_SYSTEM_PROMPT, ANSWER_USER_TEMPLATE
from .models import AnswerResult, SourceSnippet

logger = logging.getLogger("rag.answer")

BLOCK_SEPARATOR = "\n\n"


# ---------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------

def build_context(
    chunks: Sequence[RetrievedChunk],
    per_doc_chars: int = 1200,
    max_chars: int = 12000,
) -> str:
    """
    Join retrieved chunks into labeled context blocks within a size budget.
    """
    blocks: List[str] = []
    used = 0

    for i, chunk in enumerate(chunks, start=1):
        block = f"# Doc {i} (source: {chunk.source})\n{chunk.content[:per_doc_chars]}"

        if not blocks:
            block = block[:max_chars]
        elif used + len(BLOCK_SEPARATOR) + len(block) > max_chars:
            logger.info(
                "Context budget of %d chars reached; dropped %d of %d chunks",
                max_chars,
                len(chunks) - i + 1,
                len(chunks),
            )
            break
        else:
            used += len(BLOCK_SEPARATOR)

        blocks.append(block)
        used += len(block)

    return BLOCK_SEPARATOR.join(blocks)


def extract_text(content: Any) -> str:
    """
    Extract plain text from a chat completion message ``content``.

    - A string is returned as-is.
    - A list is treated as fragments: strings and ``{"text": ...}`` objects
      contribute their text, anything else an empty string; fragments are
      joined by newlines.
    - ``None`` yields an empty string.
    - Any other value is JSON-serialized.
    """
    if isinstance(content, str):
        return content

    if content is None:
        return ""

    if isinstance(content, list):
        parts: List[str] = []
        for fragment in content:
            if isinstance(fragment, str):
                parts.append(fragment)
            elif isinstance(fragment, dict) and isinstance(fragment.get("text"), str):
                parts.append(fragment["text"])
            else:
                parts.append("")
        return "\n".join(parts)

    return json.dumps(content, default=str)


# ---------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------

class AnswerEngine:
    """
    Grounded question answering over an index gateway and an LLM client.
    """

    def __init__(
        self,
        gateway: IndexGateway,
        llm: LLMClient,
        per_doc_chars: Optional[int] = None,
        snippet_chars: Optional[int] = None,
        max_context_chars: Optional[int] = None,
    ) -> None:
        self._gateway = gateway
        self._llm = llm
        self.per_doc_chars = per_doc_chars or settings.context_chars_per_doc
        self.snippet_chars = snippet_chars or settings.snippet_chars
        self.max_context_chars = max_context_chars or settings.max_context_chars

    async def answer(
        self,
        handle: CollectionHandle,
        query: str,
        k: int = 5,
    ) -> AnswerResult:
        """
        Answer a question from the chunks stored in one collection.

        Raises
        ------
        MisconfiguredProvider
            If the LLM credential is missing. Checked before any network call.

        ProviderFailure
            If retrieval or the LLM call fails. Never retried.
        """
        self._llm.ensure_configured()

        docs = await self._gateway.search(handle, query, k)
        context = build_context(docs, self.per_doc_chars, self.max_context_chars)

        messages = [
            {
                "role": "user",
                "content": ANSWER_USER_TEMPLATE.format(context=context, query=query),
            }
        ]

        response_msg = await self._llm.chat(ANSWER_SYSTEM_PROMPT, messages)
        text = extract_text(response_msg.get("content"))

        sources = [
            SourceSnippet(source=d.source, snippet=d.content[: self.snippet_chars])
            for d in docs
        ]

        logger.info(
            "Answered query against %s with %d retrieved chunks",
            handle.name,
            len(docs),
        )
        return AnswerResult(text=text, sources=sources)
