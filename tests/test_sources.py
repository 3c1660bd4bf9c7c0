from types import SimpleNamespace

import fitz
import pytest

from rag_chat_server.core.errors import SourceUnavailable
from rag_chat_server.sources.models import Extracted, SoftFailure
from rag_chat_server.sources.normalizer import (
    documents_of,
    load_inline,
    normalize_sources,
    notes_of,
)
from rag_chat_server.sources.pdf_loader import load_pdf
from rag_chat_server.sources.youtube_loader import (
    NO_TRANSCRIPT_NOTE,
    TranscriptFetcher,
    load_youtube,
    parse_video_id,
)

from conftest import FakeTranscriptFetcher

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def make_pdf(path, *pages):
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    doc.save(str(path))
    doc.close()
    return str(path)


# ---------------------------------------------------------------------
# Inline text
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_inline_text_is_extracted_verbatim():
    results = await load_inline("The sky is blue.")
    assert len(results) == 1
    assert isinstance(results[0], Extracted)
    assert results[0].document.content == "The sky is blue."
    assert results[0].source == "inline"
    assert results[0].document.metadata == {"source": "inline"}


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [None, "", "   \n\t "])
async def test_blank_inline_text_yields_nothing(text):
    assert await load_inline(text) == []


# ---------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_pdf_text_is_extracted(tmp_path):
    path = make_pdf(tmp_path / "a.pdf", "Page one text", "Page two text")

    results = await load_pdf(path, "notes.pdf")

    assert len(results) == 1
    result = results[0]
    assert isinstance(result, Extracted)
    assert result.source == "notes.pdf"
    assert "Page one text" in result.document.content
    assert "Page two text" in result.document.content
    assert result.document.metadata["pages"] == 2


@pytest.mark.asyncio
async def test_pdf_without_filename_uses_default_label(tmp_path):
    path = make_pdf(tmp_path / "a.pdf", "Hello")
    results = await load_pdf(path, None)
    assert results[0].source == "upload.pdf"


@pytest.mark.asyncio
async def test_pdf_without_text_layer_is_soft_failure(tmp_path):
    path = make_pdf(tmp_path / "blank.pdf", "")

    results = await load_pdf(path, "scan.pdf")

    assert len(results) == 1
    assert isinstance(results[0], SoftFailure)
    assert results[0].has_content is False
    assert "No extractable text" in results[0].note


@pytest.mark.asyncio
async def test_corrupt_pdf_is_soft_failure(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf at all")

    results = await load_pdf(str(path), "broken.pdf")

    assert isinstance(results[0], SoftFailure)
    assert results[0].note.startswith("Error processing PDF:")


@pytest.mark.asyncio
async def test_missing_upload_raises_source_unavailable(tmp_path):
    with pytest.raises(SourceUnavailable):
        await load_pdf(str(tmp_path / "gone.upload"), "gone.pdf")


@pytest.mark.asyncio
async def test_directory_path_raises_source_unavailable(tmp_path):
    with pytest.raises(SourceUnavailable):
        await load_pdf(str(tmp_path), "dir.pdf")


@pytest.mark.asyncio
async def test_no_pdf_path_yields_nothing():
    assert await load_pdf(None, "x.pdf") == []


# ---------------------------------------------------------------------
# YouTube
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
        "youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ?t=10",
        "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ",
        "dQw4w9WgXcQ",
    ],
)
def test_parse_video_id_accepts_common_forms(url):
    assert parse_video_id(url) == "dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/watch",
        "https://www.youtube.com/channel/UC123",
        "not a url",
    ],
)
def test_parse_video_id_rejects_other_urls(url):
    assert parse_video_id(url) is None


@pytest.mark.asyncio
async def test_preferred_language_pass():
    fetcher = FakeTranscriptFetcher(preferred="hello from the video")

    results = await load_youtube(VIDEO_URL, "en", fetcher)

    assert fetcher.calls == ["preferred:en"]
    doc = results[0].document
    assert doc.content == "hello from the video"
    assert doc.source == VIDEO_URL
    assert doc.note == "YouTube transcript loaded (lang=en)"
    assert doc.metadata["video_id"] == "dQw4w9WgXcQ"


@pytest.mark.asyncio
async def test_falls_back_to_any_track_when_preferred_fails():
    fetcher = FakeTranscriptFetcher(any_track="hola", fail_preferred=True)

    results = await load_youtube(VIDEO_URL, "en", fetcher)

    assert fetcher.calls == ["preferred:en", "any"]
    assert results[0].has_content
    assert results[0].note == "YouTube transcript loaded (no lang hint)"


@pytest.mark.asyncio
async def test_falls_back_when_preferred_track_is_empty():
    fetcher = FakeTranscriptFetcher(preferred="", any_track="bonjour")
    results = await load_youtube(VIDEO_URL, "en", fetcher)
    assert results[0].document.content == "bonjour"


@pytest.mark.asyncio
async def test_both_passes_failing_is_soft_failure():
    fetcher = FakeTranscriptFetcher(fail_preferred=True, fail_any=True)

    results = await load_youtube(VIDEO_URL, "en", fetcher)

    assert len(results) == 1
    assert isinstance(results[0], SoftFailure)
    assert results[0].source == VIDEO_URL
    assert results[0].note == NO_TRANSCRIPT_NOTE


@pytest.mark.asyncio
async def test_unrecognized_url_is_soft_failure_without_fetching():
    fetcher = FakeTranscriptFetcher(preferred="never")

    results = await load_youtube("https://vimeo.com/123", "en", fetcher)

    assert isinstance(results[0], SoftFailure)
    assert fetcher.calls == []


# ---------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_normalizer_orders_inline_pdf_video(tmp_path):
    path = make_pdf(tmp_path / "a.pdf", "pdf words")
    fetcher = FakeTranscriptFetcher(preferred="video words")

    results = await normalize_sources(
        "inline words",
        path,
        "a.pdf",
        VIDEO_URL,
        transcript_fetcher=fetcher,
    )

    assert [r.source for r in results] == ["inline", "a.pdf", VIDEO_URL]
    assert all(r.has_content for r in results)


@pytest.mark.asyncio
async def test_normalizer_mixes_successes_and_failures():
    fetcher = FakeTranscriptFetcher(fail_preferred=True, fail_any=True)

    results = await normalize_sources(
        "The sky is blue.",
        youtube_url=VIDEO_URL,
        transcript_fetcher=fetcher,
    )

    assert [r.has_content for r in results] == [True, False]
    assert [d.source for d in documents_of(results)] == ["inline"]
    assert notes_of(results) == [NO_TRANSCRIPT_NOTE]


@pytest.mark.asyncio
async def test_normalizer_with_no_inputs_is_empty():
    assert await normalize_sources() == []


# ---------------------------------------------------------------------
# TranscriptFetcher
# ---------------------------------------------------------------------

def caption_track(language_code, is_generated, text=None, error=None):
    def _fetch():
        if error is not None:
            raise error
        return [SimpleNamespace(text=line) for line in text.split("\n")]

    return SimpleNamespace(language_code=language_code, is_generated=is_generated, fetch=_fetch)


class FakeTranscriptApi:
    def __init__(self, tracks):
        self.tracks = tracks

    def list(self, video_id):
        return list(self.tracks)


def test_fetch_any_prefers_manual_tracks():
    api = FakeTranscriptApi([
        caption_track("en", True, text="auto captions"),
        caption_track("de", False, text="manual captions"),
    ])

    assert TranscriptFetcher(api).fetch_any("dQw4w9WgXcQ") == "manual captions"


def test_fetch_any_skips_a_broken_track():
    api = FakeTranscriptApi([
        caption_track("en", False, error=RuntimeError("track broken")),
        caption_track("en", True, text="auto captions\ntext"),
    ])

    assert TranscriptFetcher(api).fetch_any("dQw4w9WgXcQ") == "auto captions\ntext"


def test_fetch_any_with_only_broken_or_empty_tracks_is_empty():
    api = FakeTranscriptApi([
        caption_track("en", False, error=RuntimeError("track broken")),
        caption_track("fr", True, text=""),
    ])

    assert TranscriptFetcher(api).fetch_any("dQw4w9WgXcQ") == ""
