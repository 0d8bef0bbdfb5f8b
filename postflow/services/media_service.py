"""Candidate media: fetch, validate with Pillow, optional stock search."""
from dataclasses import dataclass
from io import BytesIO

import httpx
from PIL import Image, UnidentifiedImageError

from postflow.config import Settings
from postflow.models.schemas import MediaRef
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"


@dataclass
class ImageCheck:
    """Result of inspecting image bytes."""

    ok: bool
    reason: str = ""
    mime_type: str | None = None
    width: int = 0
    height: int = 0


def inspect_image(data: bytes, settings: Settings) -> ImageCheck:
    """Decodable, allowed format, within byte and dimension limits."""
    if not data:
        return ImageCheck(False, "empty")
    if len(data) > settings.max_image_bytes:
        return ImageCheck(False, f"too large ({len(data)} bytes)")
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = (img.format or "").upper()
            width, height = img.size
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        return ImageCheck(False, f"undecodable: {e}")
    allowed = {f.upper() for f in settings.allowed_image_formats}
    if fmt not in allowed:
        return ImageCheck(False, f"format {fmt or 'unknown'} not allowed")
    if min(width, height) < settings.min_image_dimension:
        return ImageCheck(False, f"too small ({width}x{height})")
    return ImageCheck(True, mime_type=Image.MIME.get(fmt), width=width, height=height)


class MediaService:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.extraction_timeout_seconds),
            follow_redirects=True,
            headers={"User-Agent": self.settings.http_user_agent},
            transport=self._transport,
        )

    async def fetch_bytes(self, url: str) -> bytes:
        """Download up to max_image_bytes + 1 bytes (enough to know it is too large)."""
        limit = self.settings.max_image_bytes + 1
        chunks: list[bytes] = []
        size = 0
        async with self._client() as client:
            async with client.stream("GET", url) as resp:
                resp.raise_for_status()
                async for chunk in resp.aiter_bytes():
                    chunks.append(chunk)
                    size += len(chunk)
                    if size >= limit:
                        break
        return b"".join(chunks)[:limit]

    async def validate(self, ref: MediaRef) -> MediaRef | None:
        """Return ref enriched with mime type and size, or None if it cannot be used."""
        try:
            data = await self.fetch_bytes(ref.url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info("media_fetch_failed", url=ref.url, error=str(e))
            return None
        check = inspect_image(data, self.settings)
        if not check.ok:
            logger.info("media_rejected", url=ref.url, reason=check.reason)
            return None
        return ref.model_copy(
            update={
                "mime_type": check.mime_type,
                "width": check.width,
                "height": check.height,
                "size_bytes": len(data),
            }
        )

    async def search(self, query: str, count: int = 3) -> list[MediaRef]:
        """Stock photo search. Empty when no Unsplash key is configured."""
        if not self.settings.unsplash_access_key or not query.strip():
            return []
        async with self._client() as client:
            resp = await client.get(
                UNSPLASH_SEARCH_URL,
                params={"query": query, "per_page": count, "orientation": "landscape"},
                headers={"Authorization": f"Client-ID {self.settings.unsplash_access_key}"},
            )
            resp.raise_for_status()
            results = resp.json().get("results", [])
        refs = []
        for item in results[:count]:
            url = (item.get("urls") or {}).get("regular")
            if url:
                refs.append(MediaRef(url=url, alt=item.get("alt_description") or item.get("description"), source="search"))
        return refs
