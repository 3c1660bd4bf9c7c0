"""
YouTube transcript loader.

Captions are fetched in two passes with youtube-transcript-api:

1. the preferred language (``YT_LANGUAGE``),
2. only if pass 1 produced no text, any available track, manually created
   tracks before auto-generated ones.

Each pass is fault tolerant on its own. When neither pass yields text the
loader returns a `SoftFailure` so the caller can surface a captions hint.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, Iterable, List, Optional
from urllib.parse import parse_qs, urlparse

from youtube_transcript_api import YouTubeTranscriptApi

from ..core.errors import CaptionUnavailable
from .models import Extracted, SoftFailure, SourceDocument, SourceResult

logger = logging.getLogger("rag.youtube")

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")

_YOUTUBE_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtube-nocookie.com",
    "www.youtube-nocookie.com",
}
_PATH_PREFIXES = ("embed", "shorts", "live", "v")

NO_TRANSCRIPT_NOTE = (
    "No transcript available or failed to fetch captions for this video"
)


# ---------------------------------------------------------------------
# URL parsing
# ---------------------------------------------------------------------

def parse_video_id(url: str) -> Optional[str]:
    """
    Return the 11-character video id of a YouTube URL, or None.

    Accepts watch, youtu.be, embed, shorts and live URLs on the desktop,
    mobile and music hosts, with or without a scheme, and bare video ids.
    """
    candidate = url.strip()
    if VIDEO_ID_PATTERN.match(candidate):
        return candidate

    if "://" not in candidate:
        candidate = "https://" + candidate

    parsed = urlparse(candidate)
    host = (parsed.hostname or "").lower()
    segments = [s for s in parsed.path.split("/") if s]

    video_id: Optional[str] = None
    if host == "youtu.be":
        video_id = segments[0] if segments else None
    elif host in _YOUTUBE_HOSTS:
        if segments[:1] == ["watch"]:
            video_id = parse_qs(parsed.query).get("v", [None])[0]
        elif len(segments) >= 2 and segments[0] in _PATH_PREFIXES:
            video_id = segments[1]

    if video_id and VIDEO_ID_PATTERN.match(video_id):
        return video_id
    return None


# ---------------------------------------------------------------------
# Transcript fetching
# ---------------------------------------------------------------------

def _join_snippets(snippets: Iterable) -> str:
    return "\n".join(getattr(s, "text", "") or "" for s in snippets).strip()


class TranscriptFetcher:
    """
    Thin synchronous wrapper over youtube-transcript-api.

    Both methods return the joined transcript text ("" when no track has
    text). `fetch_preferred` lets provider exceptions propagate; `fetch_any`
    skips tracks that fail and only propagates a failure to list tracks.
    """

    def __init__(self, api: Optional[YouTubeTranscriptApi] = None) -> None:
        self._api = api or YouTubeTranscriptApi()

    def fetch_preferred(self, video_id: str, language: str) -> str:
        return _join_snippets(self._api.fetch(video_id, languages=[language]))

    def fetch_any(self, video_id: str) -> str:
        tracks = sorted(self._api.list(video_id), key=lambda t: t.is_generated)
        for track in tracks:
            try:
                text = _join_snippets(track.fetch())
            except Exception as exc:
                logger.warning(
                    "Caption track %s of %s failed: %s",
                    getattr(track, "language_code", "?"),
                    video_id,
                    exc,
                )
                continue
            if text:
                return text
        return ""


async def _attempt(label: str, fetch: Callable[..., str], *args: str) -> str:
    try:
        return await asyncio.to_thread(fetch, *args)
    except Exception as exc:
        logger.warning("YouTube load attempt (%s) failed: %s", label, exc)
        return ""


async def fetch_transcript(
    fetcher: TranscriptFetcher,
    video_id: str,
    language: str,
) -> tuple[str, str]:
    """
    Run both caption passes.

    Returns
    -------
    tuple[str, str]
        The transcript text and a note naming the pass that produced it.

    Raises
    ------
    CaptionUnavailable
        If neither pass produced any text.
    """
    text = await _attempt(f"lang={language}", fetcher.fetch_preferred, video_id, language)
    if text:
        return text, f"YouTube transcript loaded (lang={language})"

    text = await _attempt("no lang hint", fetcher.fetch_any, video_id)
    if text:
        return text, "YouTube transcript loaded (no lang hint)"

    raise CaptionUnavailable(NO_TRANSCRIPT_NOTE)


async def load_youtube(
    url: Optional[str],
    language: str,
    fetcher: Optional[TranscriptFetcher] = None,
) -> List[SourceResult]:
    """
    Normalize a YouTube URL into at most one source result.
    """
    if not url or not url.strip():
        return []

    url = url.strip()
    video_id = parse_video_id(url)
    if video_id is None:
        logger.warning("Unrecognized YouTube URL: %s", url)
        return [SoftFailure(source=url, note="Not a recognizable YouTube video URL")]

    try:
        text, note = await fetch_transcript(fetcher or TranscriptFetcher(), video_id, language)
    except CaptionUnavailable as exc:
        logger.warning("No captions for %s (video %s)", url, video_id)
        return [SoftFailure(source=url, note=exc.message)]

    logger.info("Loaded transcript for video %s: %d chars", video_id, len(text))
    return [
        Extracted(
            document=SourceDocument(
                content=text,
                source=url,
                note=note,
                extra={"video_id": video_id},
            )
        )
    ]
