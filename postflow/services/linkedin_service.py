"""LinkedIn posting (UGC Posts API) with optional image upload."""
import httpx

from postflow.config import Settings
from postflow.models.schemas import MediaRef
from postflow.services.media_service import MediaService
from postflow.services.platform import PostReceipt
from postflow.utils.logging import get_logger
from postflow.workflow.errors import PublishError

logger = get_logger(__name__)

LINKEDIN_API_BASE = "https://api.linkedin.com"
RESTLI_VERSION = "2.0.0"
IMAGE_RECIPE = "urn:li:digitalmediaRecipe:feedshare-image"


class LinkedInClient:
    """Posts as a person or organization URN resolved from the account name."""

    platform = "linkedin"

    def __init__(self, settings: Settings, media: MediaService):
        self.settings = settings
        self.media = media

    def _author_urn(self, account: str | None) -> str:
        name = account or self.settings.default_account
        if name.startswith("urn:li:"):
            return name
        urn = self.settings.linkedin_accounts.get(name)
        if not urn:
            raise PublishError(self.platform, f"no LinkedIn author configured for account '{name}'")
        return urn

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.linkedin_access_token}",
            "Content-Type": "application/json",
            "X-Restli-Protocol-Version": RESTLI_VERSION,
        }

    async def _upload_image(self, client: httpx.AsyncClient, author_urn: str, media: MediaRef) -> str:
        """registerUpload -> PUT bytes. Returns the digital media asset URN."""
        register = await client.post(
            f"{LINKEDIN_API_BASE}/v2/assets?action=registerUpload",
            json={
                "registerUploadRequest": {
                    "recipes": [IMAGE_RECIPE],
                    "owner": author_urn,
                    "serviceRelationships": [
                        {"relationshipType": "OWNER", "identifier": "urn:li:userGeneratedContent"}
                    ],
                }
            },
            headers=self._headers(),
        )
        register.raise_for_status()
        value = register.json()["value"]
        upload_url = value["uploadMechanism"]["com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"]["uploadUrl"]
        data = await self.media.fetch_bytes(media.url)
        put = await client.put(
            upload_url,
            content=data,
            headers={
                "Authorization": f"Bearer {self.settings.linkedin_access_token}",
                "Content-Type": media.mime_type or "application/octet-stream",
            },
        )
        put.raise_for_status()
        return value["asset"]

    async def create_post(self, text: str, media: MediaRef | None, account: str | None) -> PostReceipt:
        """Create a UGC post. Image upload failures fall back to a text-only post (media_dropped=True)."""
        if not self.settings.linkedin_access_token:
            raise PublishError(self.platform, "LinkedIn access token not configured")
        author_urn = self._author_urn(account)
        share: dict = {"shareCommentary": {"text": text}, "shareMediaCategory": "NONE"}
        media_dropped = False
        async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as client:
            if media is not None:
                try:
                    asset = await self._upload_image(client, author_urn, media)
                    share["shareMediaCategory"] = "IMAGE"
                    share["media"] = [{"status": "READY", "media": asset}]
                except (httpx.HTTPError, KeyError) as e:
                    logger.warning("linkedin_image_upload_failed", url=media.url, error=str(e))
                    media_dropped = True

            body = {
                "author": author_urn,
                "lifecycleState": "PUBLISHED",
                "specificContent": {"com.linkedin.ugc.ShareContent": share},
                "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
            }
            try:
                resp = await client.post(f"{LINKEDIN_API_BASE}/v2/ugcPosts", json=body, headers=self._headers())
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.warning("create_ugc_post_failed", status=e.response.status_code, body=e.response.text[:500])
                raise PublishError(self.platform, f"HTTP {e.response.status_code}: {e.response.text[:200]}") from e
            except httpx.HTTPError as e:
                logger.warning("create_ugc_post_failed", error=str(e))
                raise PublishError(self.platform, str(e)) from e
        return PostReceipt(external_id=resp.headers.get("X-RestLi-Id") or "", media_dropped=media_dropped)
