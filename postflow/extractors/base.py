"""Extractor adapter contract and shared HTTP plumbing."""
from abc import ABC, abstractmethod
from enum import Enum

import httpx
from pydantic import BaseModel, Field
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from postflow.config import Settings
from postflow.models.schemas import MediaRef


class SourceKind(str, Enum):
    GITHUB = "github"
    YOUTUBE = "youtube"
    SOCIAL = "social"
    WEB = "web"


class ExtractedContent(BaseModel):
    """What an adapter returns for one link."""

    content: str
    media: list[MediaRef] = Field(default_factory=list)


class BaseExtractor(ABC):
    """One adapter per source kind. extract raises ExtractionFailure; timeouts are applied by the caller."""

    kind: SourceKind

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    @abstractmethod
    async def extract(self, link: str) -> ExtractedContent:
        ...

    def _client(self, **kwargs) -> httpx.AsyncClient:
        headers = {"User-Agent": self.settings.http_user_agent, **kwargs.pop("headers", {})}
        return httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(self.settings.extraction_timeout_seconds),
            follow_redirects=True,
            transport=self._transport,
            **kwargs,
        )

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _get(self, client: httpx.AsyncClient, url: str, **kwargs) -> httpx.Response:
        """GET with retries on transport errors only; HTTP status errors are raised immediately."""
        resp = await client.get(url, **kwargs)
        resp.raise_for_status()
        return resp

    def _clip(self, text: str) -> str:
        text = " ".join((text or "").split())
        limit = self.settings.max_source_chars
        return text if len(text) <= limit else text[:limit].rstrip() + " ..."
