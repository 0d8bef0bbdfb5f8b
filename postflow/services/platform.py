"""Platform client contract shared by the publishers."""
from typing import Protocol

from pydantic import BaseModel

from postflow.models.schemas import MediaRef


class PostReceipt(BaseModel):
    external_id: str
    media_dropped: bool = False


class PlatformClient(Protocol):
    """Publishes immediately. Raises PublishError on failure."""

    platform: str

    async def create_post(self, text: str, media: MediaRef | None, account: str | None) -> PostReceipt:
        ...
