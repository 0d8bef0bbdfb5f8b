"""Generic web page extractor (HTML -> readable text + candidate images)."""
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup

from postflow.extractors.base import BaseExtractor, ExtractedContent, SourceKind
from postflow.models.schemas import MediaRef
from postflow.workflow.errors import ExtractionFailure

_MAX_INLINE_IMAGES = 4


def _meta(soup: BeautifulSoup, *names: str) -> str:
    for name in names:
        tag = soup.find("meta", attrs={"property": name}) or soup.find("meta", attrs={"name": name})
        if tag and tag.get("content"):
            return str(tag["content"]).strip()
    return ""


def html_to_text(html: str) -> tuple[str, str]:
    """Return (title, body text) from an HTML document."""
    soup = BeautifulSoup(html, "lxml")
    for node in soup(["script", "style", "noscript", "nav", "footer", "header", "aside", "form"]):
        node.decompose()
    title = _meta(soup, "og:title", "twitter:title") or (soup.title.get_text(strip=True) if soup.title else "")
    root = soup.find("article") or soup.find("main") or soup.body or soup
    parts: list[str] = []
    for node in root.find_all(["h1", "h2", "h3", "p", "li", "pre"]):
        snippet = node.get_text(" ", strip=True)
        if len(snippet) >= 30 or node.name in ("h1", "h2", "h3"):
            parts.append(snippet)
    if not parts:
        parts.append(root.get_text(" ", strip=True))
    return title, "\n".join(parts)


def _resolve(base_url: str, src: str) -> str | None:
    """Absolute http(s) URL for src, or None when it is empty or cannot be parsed."""
    if not src:
        return None
    try:
        url = urljoin(base_url, src)
        parts = urlsplit(url)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return url


def html_media(html: str, base_url: str) -> list[MediaRef]:
    """Hero image first, then a few inline article images. Unparseable URLs are skipped."""
    soup = BeautifulSoup(html, "lxml")
    media: list[MediaRef] = []
    hero = _resolve(base_url, _meta(soup, "og:image", "twitter:image", "twitter:image:src"))
    if hero:
        media.append(MediaRef(url=hero))
    root = soup.find("article") or soup.find("main")
    if root is not None:
        for img in root.find_all("img", src=True)[:_MAX_INLINE_IMAGES]:
            src = str(img["src"]).strip()
            url = None if src.startswith("data:") else _resolve(base_url, src)
            if url is None:
                continue
            media.append(MediaRef(url=url, alt=(img.get("alt") or None)))
    unique: dict[str, MediaRef] = {}
    for ref in media:
        unique.setdefault(ref.url, ref)
    return list(unique.values())


class WebExtractor(BaseExtractor):
    kind = SourceKind.WEB

    async def extract(self, link: str) -> ExtractedContent:
        try:
            async with self._client() as client:
                resp = await self._get(client, link)
        except httpx.HTTPError as e:
            raise ExtractionFailure(link, f"fetch failed: {e}") from e
        content_type = resp.headers.get("content-type", "")
        if "html" not in content_type and "text" not in content_type:
            raise ExtractionFailure(link, f"unsupported content type {content_type or 'unknown'}")
        title, body = html_to_text(resp.text)
        text = self._clip(f"{title}\n\n{body}" if title else body)
        if not text.strip():
            raise ExtractionFailure(link, "no readable text")
        return ExtractedContent(content=text, media=html_media(resp.text, str(resp.url)))
