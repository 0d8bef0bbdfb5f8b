"""Publish adapter: post now or schedule for later, one PublishOutcome row per platform."""
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from postflow.models.db_models import PublishOutcome
from postflow.models.schemas import MediaRef, PlatformResult, PostContent
from postflow.services.platform import PlatformClient
from postflow.utils.helpers import utcnow
from postflow.utils.logging import get_logger
from postflow.workflow.errors import PublishError

logger = get_logger(__name__)


class PublishService:
    """
    publish() never raises: every platform gets a PlatformResult. Future schedule times become
    `scheduled` rows picked up by APScheduler date jobs; past or missing times publish now.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clients: dict[str, PlatformClient],
        scheduler: AsyncIOScheduler | None = None,
    ):
        self._session_factory = session_factory
        self.clients = clients
        self.scheduler = scheduler

    async def publish(
        self,
        platform: str,
        content: PostContent,
        schedule: datetime | None,
        account: str | None = None,
        instance_id: str | None = None,
    ) -> PlatformResult:
        client = self.clients.get(platform)
        if client is None:
            result = PlatformResult(platform=platform, success=False, status="failed", detail="no client configured")
            await self._record(instance_id, account, content, result)
            return result

        if schedule is not None and schedule > utcnow():
            result = PlatformResult(
                platform=platform,
                success=True,
                status="scheduled",
                detail=f"scheduled for {schedule.isoformat()}",
                scheduled_at=schedule,
            )
            outcome_id = await self._record(instance_id, account, content, result)
            if outcome_id is not None:
                self._enqueue(outcome_id, schedule)
            return result

        result = await self._post_now(client, content.text, content.media, account)
        await self._record(instance_id, account, content, result)
        return result

    async def _post_now(
        self, client: PlatformClient, text: str, media: MediaRef | None, account: str | None
    ) -> PlatformResult:
        try:
            receipt = await client.create_post(text, media, account)
        except PublishError as e:
            return PlatformResult(platform=client.platform, success=False, status="failed", detail=e.detail)
        except Exception as e:
            logger.exception("publish_unexpected_error", platform=client.platform, error=str(e))
            return PlatformResult(platform=client.platform, success=False, status="failed", detail=str(e))
        detail = "published without image (media upload failed)" if receipt.media_dropped else "published"
        return PlatformResult(
            platform=client.platform,
            success=True,
            status="published",
            detail=detail,
            external_id=receipt.external_id,
            media_dropped=receipt.media_dropped,
        )

    async def _record(
        self, instance_id: str | None, account: str | None, content: PostContent, result: PlatformResult
    ) -> int | None:
        row = PublishOutcome(
            instance_id=instance_id,
            platform=result.platform,
            account=account,
            status=result.status,
            text=content.text,
            media_url=content.media.url if content.media and not result.media_dropped else None,
            external_id=result.external_id,
            detail=result.detail,
            scheduled_at=result.scheduled_at,
            published_at=utcnow() if result.status == "published" else None,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
        except SQLAlchemyError as e:
            # The platform call already happened; the instance state still carries the result.
            logger.error("publish_outcome_persist_failed", platform=result.platform, instance_id=instance_id, error=str(e))
            return None
        return row.id

    # ----- scheduled publishing -----

    def _enqueue(self, outcome_id: int, run_at: datetime) -> None:
        if self.scheduler is None:
            logger.warning("scheduled_publish_not_enqueued", outcome_id=outcome_id, reason="no scheduler")
            return
        self.scheduler.add_job(
            self.run_scheduled,
            "date",
            run_date=run_at,
            id=f"publish_{outcome_id}",
            args=[outcome_id],
            replace_existing=True,
            misfire_grace_time=None,
        )

    async def restore_scheduled(self) -> int:
        """Re-enqueue pending scheduled rows after a restart. Returns how many were enqueued."""
        async with self._session_factory() as session:
            r = await session.execute(select(PublishOutcome).where(PublishOutcome.status == "scheduled"))
            rows = list(r.scalars().all())
        for row in rows:
            self._enqueue(row.id, row.scheduled_at or utcnow())
        return len(rows)

    async def run_scheduled(self, outcome_id: int) -> PlatformResult | None:
        """APScheduler job: publish a scheduled row once (scheduled -> publishing claim)."""
        async with self._session_factory() as session:
            claim = await session.execute(
                update(PublishOutcome)
                .where(PublishOutcome.id == outcome_id, PublishOutcome.status == "scheduled")
                .values(status="publishing")
            )
            await session.commit()
            if claim.rowcount != 1:
                return None
            row = (await session.execute(select(PublishOutcome).where(PublishOutcome.id == outcome_id))).scalar_one()

        client = self.clients.get(row.platform)
        media = MediaRef(url=row.media_url) if row.media_url else None
        if client is None:
            result = PlatformResult(platform=row.platform, success=False, status="failed", detail="no client configured")
        else:
            result = await self._post_now(client, row.text, media, row.account)

        async with self._session_factory() as session:
            await session.execute(
                update(PublishOutcome)
                .where(PublishOutcome.id == outcome_id)
                .values(
                    status=result.status,
                    external_id=result.external_id,
                    detail=result.detail,
                    published_at=utcnow() if result.success else None,
                )
            )
            await session.commit()
        logger.info("scheduled_publish_done", outcome_id=outcome_id, platform=row.platform, status=result.status)
        return result


def default_clients(settings, media) -> dict[str, PlatformClient]:
    """Clients for every supported platform, keyed by platform name."""
    from postflow.services.linkedin_service import LinkedInClient
    from postflow.services.x_service import XClient

    return {"linkedin": LinkedInClient(settings, media), "x": XClient(settings, media)}
