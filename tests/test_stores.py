"""DedupStore and InstanceStore against SQLite."""
import pytest

from postflow.services.dedup_store import PROCESSED_URLS, DedupStore
from postflow.services.instance_store import (
    COMMITTING,
    COMPLETED,
    CREATED,
    FAILED,
    RUNNING,
    SUSPENDED,
    InstanceStore,
)
from postflow.workflow.errors import InvalidResumeState, UnknownInstance


@pytest.mark.asyncio
async def test_dedup_put_is_append_only(session_factory):
    store = DedupStore(session_factory)

    assert await store.has("a.example/post") is False
    assert await store.put("a.example/post") is True
    assert await store.put("a.example/post") is False
    assert await store.has("a.example/post") is True
    assert store.namespace == PROCESSED_URLS


@pytest.mark.asyncio
async def test_dedup_namespaces_are_isolated(session_factory):
    urls = DedupStore(session_factory)
    other = DedupStore(session_factory, namespace="other")

    await urls.put("a.example/post")

    assert await other.has("a.example/post") is False


@pytest.mark.asyncio
async def test_claim_is_compare_and_set(session_factory):
    store = InstanceStore(session_factory, DedupStore(session_factory))
    instance_id = await store.create({"links": ["https://a.example"]})

    record = await store.claim(instance_id, CREATED, RUNNING)
    assert record.status == RUNNING
    assert record.state["instance_id"] == instance_id

    with pytest.raises(InvalidResumeState) as exc:
        await store.claim(instance_id, CREATED, RUNNING)
    assert exc.value.status == RUNNING

    with pytest.raises(UnknownInstance):
        await store.claim("nope", CREATED, RUNNING)


@pytest.mark.asyncio
async def test_suspend_refuses_when_cancel_requested(session_factory):
    store = InstanceStore(session_factory, DedupStore(session_factory))
    instance_id = await store.create({})
    await store.claim(instance_id, CREATED, RUNNING)
    assert await store.request_cancel(instance_id) is True

    assert await store.suspend(instance_id, {"stage": "awaiting_review"}, []) is False
    assert (await store.get(instance_id)).status == RUNNING


@pytest.mark.asyncio
async def test_finalize_commit_writes_dedup_and_status_together(session_factory):
    dedup = DedupStore(session_factory)
    store = InstanceStore(session_factory, dedup)
    instance_id = await store.create({})
    await store.claim(instance_id, CREATED, RUNNING)
    await store.begin_commit(instance_id)

    added = await store.finalize_commit(
        instance_id, COMPLETED, {"stage": "closed"}, [], ["a.example/post", "b.example/post", "a.example/post"]
    )

    assert added == 2
    record = await store.get(instance_id)
    assert record.status == COMPLETED
    assert record.completed_at is not None
    assert await dedup.has("b.example/post") is True


@pytest.mark.asyncio
async def test_finalize_commit_requires_committing(session_factory):
    dedup = DedupStore(session_factory)
    store = InstanceStore(session_factory, dedup)
    instance_id = await store.create({})
    await store.claim(instance_id, CREATED, RUNNING)

    with pytest.raises(InvalidResumeState):
        await store.finalize_commit(instance_id, COMPLETED, {}, [], ["a.example/post"])

    assert await dedup.has("a.example/post") is False


@pytest.mark.asyncio
async def test_begin_commit_blocked_by_cancel_request(session_factory):
    store = InstanceStore(session_factory, DedupStore(session_factory))
    instance_id = await store.create({})
    await store.claim(instance_id, CREATED, RUNNING)
    await store.request_cancel(instance_id)

    with pytest.raises(InvalidResumeState):
        await store.begin_commit(instance_id)


@pytest.mark.asyncio
async def test_interrupted_commit_stays_visible(session_factory):
    store = InstanceStore(session_factory, DedupStore(session_factory))
    instance_id = await store.create({})
    await store.claim(instance_id, CREATED, RUNNING)
    await store.begin_commit(instance_id)

    assert await store.mark_failed(instance_id, "process died") is False
    assert [r.id for r in await store.list_instances(status=COMMITTING)] == [instance_id]


@pytest.mark.asyncio
async def test_mark_failed_from_running(session_factory):
    store = InstanceStore(session_factory, DedupStore(session_factory))
    instance_id = await store.create({})
    await store.claim(instance_id, CREATED, RUNNING)

    assert await store.mark_failed(instance_id, "boom") is True
    record = await store.get(instance_id)
    assert record.status == FAILED
    assert record.error == "boom"
    assert await store.transition(instance_id, [SUSPENDED], RUNNING) is False
