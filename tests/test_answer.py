from unittest.mock import AsyncMock, MagicMock

import pytest

from rag_chat_server.core.errors import MisconfiguredProvider
from rag_chat_server.embeddings.gateway import IndexGateway
from rag_chat_server.embeddings.models import Chunk, CollectionHandle, RetrievedChunk
from rag_chat_server.llm.client import LLMClient
from rag_chat_server.prompts import ANSWER_SYSTEM_PROMPT
from rag_chat_server.rag.answer import AnswerEngine, build_context, extract_text


def retrieved(content, source="inline", score=0.9):
    return RetrievedChunk(content=content, metadata={"source": source}, score=score)


@pytest.fixture
def mock_llm():
    llm = MagicMock(spec=LLMClient)
    llm.chat.return_value = {"role": "assistant", "content": "The sky is blue."}
    return llm


# ---------------------------------------------------------------------
# Context assembly
# ---------------------------------------------------------------------

def test_context_blocks_are_labeled_in_rank_order():
    context = build_context([retrieved("alpha", "a.pdf"), retrieved("beta")])

    assert context == "# Doc 1 (source: a.pdf)\nalpha\n\n# Doc 2 (source: inline)\nbeta"


def test_context_truncates_each_chunk():
    context = build_context([retrieved("x" * 5000)], per_doc_chars=1200)

    assert context.count("x") == 1200


def test_context_respects_total_budget():
    chunks = [retrieved("y" * 1000) for _ in range(10)]

    context = build_context(chunks, per_doc_chars=1200, max_chars=2500)

    assert len(context) <= 2500
    assert context.count("# Doc") == 2


def test_first_block_is_kept_even_when_over_budget():
    context = build_context([retrieved("z" * 1000)], per_doc_chars=1200, max_chars=100)

    assert context.startswith("# Doc 1 (source: inline)")
    assert len(context) == 100


def test_context_of_nothing_is_empty():
    assert build_context([]) == ""


def test_missing_source_is_labeled_unknown():
    chunk = RetrievedChunk(content="orphan", metadata={}, score=0.1)
    assert build_context([chunk]).startswith("# Doc 1 (source: unknown)")


# ---------------------------------------------------------------------
# Response text extraction
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "content,expected",
    [
        ("plain", "plain"),
        ("", ""),
        (None, ""),
        (["a", {"text": "b"}, {"type": "image"}, 3], "a\nb\n\n"),
        ({"answer": 42}, '{"answer": 42}'),
        (7, "7"),
    ],
)
def test_extract_text(content, expected):
    assert extract_text(content) == expected


# ---------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_answer_cites_every_retrieved_chunk(mock_llm):
    gateway = AsyncMock(spec=IndexGateway)
    gateway.search.return_value = [
        retrieved("The sky is blue." * 30, "inline"),
        retrieved("The sky is blue." * 30, "inline"),
        retrieved("Clouds are white.", "notes.pdf"),
    ]
    engine = AnswerEngine(gateway, mock_llm)
    handle = CollectionHandle(name="ragChat")

    result = await engine.answer(handle, "What color is the sky?", k=3)

    gateway.search.assert_awaited_once_with(handle, "What color is the sky?", 3)
    assert result.text == "The sky is blue."
    assert [s.source for s in result.sources] == ["inline", "inline", "notes.pdf"]
    assert all(len(s.snippet) <= 200 for s in result.sources)
    assert result.sources[2].snippet == "Clouds are white."


@pytest.mark.asyncio
async def test_answer_sends_single_grounded_prompt(mock_llm):
    gateway = AsyncMock(spec=IndexGateway)
    gateway.search.return_value = [retrieved("The sky is blue.")]
    engine = AnswerEngine(gateway, mock_llm)

    await engine.answer(CollectionHandle(name="ragChat"), "What color is the sky?")

    mock_llm.chat.assert_awaited_once()
    system_prompt, messages = mock_llm.chat.await_args.args
    assert system_prompt == ANSWER_SYSTEM_PROMPT
    assert len(messages) == 1
    assert messages[0]["role"] == "user"
    assert "# Doc 1 (source: inline)\nThe sky is blue." in messages[0]["content"]
    assert messages[0]["content"].endswith("Question: What color is the sky?\n\nAnswer:")


@pytest.mark.asyncio
async def test_answer_with_no_hits_still_asks_the_model(mock_llm):
    gateway = AsyncMock(spec=IndexGateway)
    gateway.search.return_value = []
    engine = AnswerEngine(gateway, mock_llm)

    result = await engine.answer(CollectionHandle(name="ragChat"), "anything?")

    assert result.sources == []
    mock_llm.chat.assert_awaited_once()


@pytest.mark.asyncio
async def test_missing_llm_key_fails_before_retrieval():
    gateway = AsyncMock(spec=IndexGateway)
    engine = AnswerEngine(gateway, LLMClient(api_key=""))

    with pytest.raises(MisconfiguredProvider):
        await engine.answer(CollectionHandle(name="ragChat"), "question")

    gateway.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_end_to_end_with_real_index(gateway, mock_llm):
    handle = gateway.connect("answerE2E")
    await gateway.upsert(
        [Chunk(content="The sky is blue.", metadata={"source": "inline"})],
        handle,
    )
    engine = AnswerEngine(gateway, mock_llm)

    result = await engine.answer(handle, "What color is the sky?")

    assert "blue" in result.text
    assert result.sources[0].source == "inline"
    assert result.sources[0].snippet == "The sky is blue."
