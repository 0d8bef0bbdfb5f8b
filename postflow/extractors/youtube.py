"""Video extractor: oEmbed metadata + transcript."""
import asyncio
from urllib.parse import parse_qs, urlsplit

import httpx
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from postflow.extractors.base import BaseExtractor, ExtractedContent, SourceKind
from postflow.models.schemas import MediaRef
from postflow.utils.logging import get_logger
from postflow.workflow.errors import ExtractionFailure

logger = get_logger(__name__)

YOUTUBE_OEMBED_URL = "https://www.youtube.com/oembed"


def video_id_from_link(link: str) -> str | None:
    parts = urlsplit(link if "://" in link else f"https://{link}")
    host = (parts.hostname or "").lower()
    path = parts.path.strip("/")
    if host.endswith("youtu.be"):
        return path.split("/")[0] or None
    if path == "watch":
        return (parse_qs(parts.query).get("v") or [None])[0]
    for prefix in ("shorts/", "live/", "embed/"):
        if path.startswith(prefix):
            return path[len(prefix):].split("/")[0] or None
    return None


def _fetch_transcript(video_id: str) -> str:
    fetched = YouTubeTranscriptApi().fetch(video_id, languages=["en", "en-US", "en-GB"])
    return " ".join(snippet.text for snippet in fetched)


class YouTubeExtractor(BaseExtractor):
    kind = SourceKind.YOUTUBE

    async def extract(self, link: str) -> ExtractedContent:
        video_id = video_id_from_link(link)
        if not video_id:
            raise ExtractionFailure(link, "no video id in link")
        watch_url = f"https://www.youtube.com/watch?v={video_id}"

        try:
            async with self._client() as client:
                meta = (await self._get(client, YOUTUBE_OEMBED_URL, params={"url": watch_url, "format": "json"})).json()
        except httpx.HTTPError as e:
            raise ExtractionFailure(link, f"oembed failed: {e}") from e

        # youtube-transcript-api is synchronous
        try:
            transcript = await asyncio.to_thread(_fetch_transcript, video_id)
        except CouldNotRetrieveTranscript as e:
            logger.info("youtube_transcript_unavailable", video_id=video_id, reason=type(e).__name__)
            transcript = ""
        except Exception as e:
            # network and parsing errors inside the transcript library; the oEmbed title still stands
            logger.warning("youtube_transcript_failed", video_id=video_id, error=f"{type(e).__name__}: {e}")
            transcript = ""

        title = meta.get("title") or ""
        author = meta.get("author_name") or ""
        if not transcript and not title:
            raise ExtractionFailure(link, "no transcript and no title")
        text = f"Video: {title}\nChannel: {author}\n\n"
        text += f"Transcript:\n{transcript}" if transcript else "(no transcript available)"

        media = []
        if meta.get("thumbnail_url"):
            media.append(MediaRef(url=meta["thumbnail_url"], alt=title or None))
        media.append(MediaRef(url=f"https://i.ytimg.com/vi/{video_id}/maxresdefault.jpg", alt=title or None))
        return ExtractedContent(content=self._clip(text), media=media)
