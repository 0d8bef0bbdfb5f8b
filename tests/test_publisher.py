"""PublishService: immediate posts, scheduled rows, and the scheduled-job runner."""
from datetime import timedelta

import pytest
from sqlalchemy import select

from postflow.models.db_models import PublishOutcome
from postflow.models.schemas import MediaRef, PostContent
from postflow.services.platform import PostReceipt
from postflow.services.publisher import PublishService
from postflow.utils.helpers import utcnow
from postflow.workflow.errors import PublishError


class FakeClient:
    def __init__(self, platform, error=None, media_dropped=False):
        self.platform = platform
        self.error = error
        self.media_dropped = media_dropped
        self.posts = []

    async def create_post(self, text, media, account):
        self.posts.append((text, media, account))
        if self.error:
            raise PublishError(self.platform, self.error)
        return PostReceipt(external_id=f"{self.platform}-{len(self.posts)}", media_dropped=self.media_dropped)


async def _outcomes(session_factory):
    async with session_factory() as session:
        r = await session.execute(select(PublishOutcome).order_by(PublishOutcome.id))
        return list(r.scalars().all())


@pytest.mark.asyncio
async def test_publish_now_records_outcome(session_factory):
    client = FakeClient("x")
    service = PublishService(session_factory, {"x": client})

    result = await service.publish("x", PostContent(text="hello"), None, account="brand", instance_id="abc")

    assert result.success is True
    assert result.status == "published"
    assert result.external_id == "x-1"
    assert client.posts == [("hello", None, "brand")]
    rows = await _outcomes(session_factory)
    assert [(r.platform, r.status, r.instance_id) for r in rows] == [("x", "published", "abc")]


@pytest.mark.asyncio
async def test_publish_error_becomes_failed_result(session_factory):
    service = PublishService(session_factory, {"linkedin": FakeClient("linkedin", error="HTTP 401: expired")})

    result = await service.publish("linkedin", PostContent(text="hello"), None)

    assert result.success is False
    assert result.status == "failed"
    assert "401" in result.detail


@pytest.mark.asyncio
async def test_unknown_platform_is_a_failed_result(session_factory):
    service = PublishService(session_factory, {})

    result = await service.publish("mastodon", PostContent(text="hello"), None)

    assert result.success is False
    assert result.detail == "no client configured"


@pytest.mark.asyncio
async def test_media_drop_is_reported(session_factory):
    service = PublishService(session_factory, {"x": FakeClient("x", media_dropped=True)})
    content = PostContent(text="hello", media=MediaRef(url="https://a.example/img.png"))

    result = await service.publish("x", content, None)

    assert result.success is True
    assert result.media_dropped is True
    rows = await _outcomes(session_factory)
    assert rows[0].media_url is None


@pytest.mark.asyncio
async def test_future_schedule_creates_row_and_runs_once(session_factory):
    client = FakeClient("x")
    service = PublishService(session_factory, {"x": client})
    when = utcnow() + timedelta(days=2)

    result = await service.publish("x", PostContent(text="later"), when, instance_id="abc")

    assert result.status == "scheduled"
    assert result.success is True
    assert client.posts == []
    rows = await _outcomes(session_factory)
    assert rows[0].status == "scheduled"

    assert await service.restore_scheduled() == 1

    ran = await service.run_scheduled(rows[0].id)
    again = await service.run_scheduled(rows[0].id)

    assert ran.status == "published"
    assert again is None
    assert client.posts == [("later", None, None)]
    assert (await _outcomes(session_factory))[0].status == "published"


@pytest.mark.asyncio
async def test_past_schedule_publishes_now(session_factory):
    client = FakeClient("x")
    service = PublishService(session_factory, {"x": client})

    result = await service.publish("x", PostContent(text="now"), utcnow() - timedelta(minutes=5))

    assert result.status == "published"
    assert len(client.posts) == 1
