"""Social post extractor for X/Twitter status links."""
import re

import httpx
from bs4 import BeautifulSoup

from postflow.extractors.base import BaseExtractor, ExtractedContent, SourceKind
from postflow.models.schemas import MediaRef
from postflow.workflow.errors import ExtractionFailure

X_API_BASE = "https://api.x.com/2"
X_OEMBED_URL = "https://publish.twitter.com/oembed"
_STATUS_RE = re.compile(r"(?:x|twitter)\.com/(\w+)/status/(\d+)", re.IGNORECASE)


class SocialPostExtractor(BaseExtractor):
    """Uses the X API when a token is configured (text + media), oEmbed otherwise (text only)."""

    kind = SourceKind.SOCIAL

    async def extract(self, link: str) -> ExtractedContent:
        match = _STATUS_RE.search(link or "")
        if not match:
            raise ExtractionFailure(link, "not a status link")
        handle, status_id = match.group(1), match.group(2)
        token = next(iter(self.settings.x_accounts.values()), "")
        try:
            if token:
                return await self._from_api(status_id, handle, token)
            return await self._from_oembed(link, handle)
        except httpx.HTTPError as e:
            raise ExtractionFailure(link, f"post lookup failed: {e}") from e

    async def _from_api(self, status_id: str, handle: str, token: str) -> ExtractedContent:
        params = {
            "tweet.fields": "created_at,note_tweet",
            "expansions": "attachments.media_keys",
            "media.fields": "url,preview_image_url,alt_text,type",
        }
        async with self._client(headers={"Authorization": f"Bearer {token}"}) as client:
            payload = (await self._get(client, f"{X_API_BASE}/tweets/{status_id}", params=params)).json()
        data = payload.get("data") or {}
        text = ((data.get("note_tweet") or {}).get("text")) or data.get("text") or ""
        media = []
        for item in (payload.get("includes") or {}).get("media", []):
            url = item.get("url") or item.get("preview_image_url")
            if url:
                media.append(MediaRef(url=url, alt=item.get("alt_text")))
        return ExtractedContent(content=self._clip(f"Post by @{handle}:\n{text}"), media=media)

    async def _from_oembed(self, link: str, handle: str) -> ExtractedContent:
        async with self._client() as client:
            payload = (await self._get(client, X_OEMBED_URL, params={"url": link, "omit_script": "true"})).json()
        soup = BeautifulSoup(payload.get("html") or "", "lxml")
        paragraph = soup.find("p")
        text = paragraph.get_text(" ", strip=True) if paragraph else ""
        if not text:
            raise ExtractionFailure(link, "empty post text")
        author = payload.get("author_name") or handle
        return ExtractedContent(content=self._clip(f"Post by {author} (@{handle}):\n{text}"))
