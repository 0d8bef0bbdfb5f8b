"""X posting (API v2) with optional image upload."""
import httpx

from postflow.config import Settings
from postflow.models.schemas import MediaRef
from postflow.services.media_service import MediaService
from postflow.services.platform import PostReceipt
from postflow.utils.logging import get_logger
from postflow.workflow.errors import PublishError

logger = get_logger(__name__)

X_API_BASE = "https://api.x.com/2"


class XClient:
    """Posts with an OAuth 2.0 user token looked up by account name."""

    platform = "x"

    def __init__(self, settings: Settings, media: MediaService):
        self.settings = settings
        self.media = media

    def _token(self, account: str | None) -> str:
        name = account or self.settings.default_account
        token = self.settings.x_accounts.get(name)
        if not token:
            raise PublishError(self.platform, f"no X token configured for account '{name}'")
        return token

    async def _upload_image(self, client: httpx.AsyncClient, token: str, media: MediaRef) -> str:
        data = await self.media.fetch_bytes(media.url)
        resp = await client.post(
            f"{X_API_BASE}/media/upload",
            headers={"Authorization": f"Bearer {token}"},
            data={"media_category": "tweet_image", "media_type": media.mime_type or "image/jpeg"},
            files={"media": ("image", data, media.mime_type or "application/octet-stream")},
        )
        resp.raise_for_status()
        return str(resp.json()["data"]["id"])

    async def create_post(self, text: str, media: MediaRef | None, account: str | None) -> PostReceipt:
        """Image upload failures fall back to a text-only post (media_dropped=True)."""
        token = self._token(account)
        body: dict = {"text": text}
        media_dropped = False
        async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as client:
            if media is not None:
                try:
                    media_id = await self._upload_image(client, token, media)
                    body["media"] = {"media_ids": [media_id]}
                except (httpx.HTTPError, KeyError, ValueError) as e:
                    logger.warning("x_media_upload_failed", url=media.url, error=str(e))
                    media_dropped = True
            try:
                resp = await client.post(
                    f"{X_API_BASE}/tweets",
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.warning("x_post_failed", status=e.response.status_code, body=e.response.text[:500])
                raise PublishError(self.platform, f"HTTP {e.response.status_code}: {e.response.text[:200]}") from e
            except httpx.HTTPError as e:
                logger.warning("x_post_failed", error=str(e))
                raise PublishError(self.platform, str(e)) from e
        return PostReceipt(external_id=str((resp.json().get("data") or {}).get("id") or ""), media_dropped=media_dropped)
