import pytest

from rag_chat_server.embeddings.chunker import Chunker
from rag_chat_server.sources.models import SourceDocument


def words_text(n):
    return " ".join(f"word{i:04d}" for i in range(n))


def longest_shared_edge(left, right):
    for size in range(min(len(left), len(right)), 0, -1):
        if left.endswith(right[:size]):
            return size
    return 0


def test_short_document_is_one_chunk(chunker):
    doc = SourceDocument(content="The sky is blue.", source="inline")

    chunks = chunker.split([doc])

    assert len(chunks) == 1
    assert chunks[0].content == "The sky is blue."
    assert chunks[0].metadata == {"source": "inline", "document_index": 0, "chunk_index": 0}


def test_chunks_respect_size_bound(chunker):
    doc = SourceDocument(content=words_text(400), source="inline")

    chunks = chunker.split([doc])

    assert len(chunks) > 1
    assert all(0 < len(c.content) <= 800 for c in chunks)
    assert [c.metadata["chunk_index"] for c in chunks] == list(range(len(chunks)))


def test_consecutive_chunks_overlap(chunker):
    doc = SourceDocument(content=words_text(400), source="inline")

    chunks = chunker.split([doc])

    for left, right in zip(chunks, chunks[1:]):
        shared = longest_shared_edge(left.content, right.content)
        assert 0 < shared <= 160


def test_every_word_survives_chunking(chunker):
    text = words_text(400)
    chunks = chunker.split([SourceDocument(content=text, source="inline")])

    seen = set()
    for c in chunks:
        seen.update(c.content.split())
    assert seen == set(text.split())


def test_unbroken_text_is_split_by_characters():
    chunker = Chunker(100, 20)
    doc = SourceDocument(content="x" * 450, source="inline")

    chunks = chunker.split([doc])

    assert len(chunks) >= 5
    assert all(len(c.content) <= 100 for c in chunks)


def test_metadata_is_copied_from_document():
    chunker = Chunker(50, 10)
    doc = SourceDocument(
        content=words_text(30),
        source="https://youtu.be/dQw4w9WgXcQ",
        note="YouTube transcript loaded (lang=en)",
        extra={"video_id": "dQw4w9WgXcQ"},
    )

    chunks = chunker.split([doc])

    for c in chunks:
        assert c.source == "https://youtu.be/dQw4w9WgXcQ"
        assert c.metadata["note"] == "YouTube transcript loaded (lang=en)"
        assert c.metadata["video_id"] == "dQw4w9WgXcQ"


def test_documents_are_chunked_in_order_and_blank_ones_skipped(chunker):
    docs = [
        SourceDocument(content="first", source="inline"),
        SourceDocument(content="   ", source="empty.pdf"),
        SourceDocument(content="third", source="https://youtu.be/dQw4w9WgXcQ"),
    ]

    chunks = chunker.split(docs)

    assert [c.content for c in chunks] == ["first", "third"]
    assert [c.metadata["document_index"] for c in chunks] == [0, 2]


def test_empty_input_yields_no_chunks(chunker):
    assert chunker.split([]) == []


@pytest.mark.parametrize("size,overlap", [(0, 0), (100, 100), (100, 150), (100, -1)])
def test_invalid_parameters_are_rejected(size, overlap):
    with pytest.raises(ValueError):
        Chunker(size, overlap)


def test_sentence_splits_keep_the_full_stop():
    text = " ".join(f"Sentence number {i} talks about topic {i}." for i in range(40))
    chunks = Chunker(200, 40).split([SourceDocument(content=text, source="inline")])

    assert len(chunks) > 1
    assert not any(c.content.startswith(".") for c in chunks)
    assert all(c.content.endswith(".") for c in chunks)
