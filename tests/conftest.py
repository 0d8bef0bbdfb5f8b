"""Shared fixtures: a SQLite database per test and an engine factory wired to fakes."""
import pytest
import pytest_asyncio

from postflow.models.db_models import create_session_factory, create_tables
from postflow.services.dedup_store import DedupStore
from postflow.services.instance_store import InstanceStore
from postflow.workflow.context import WorkflowServices
from postflow.workflow.engine import WorkflowEngine
from tests.fakes import FakeExtractor, FakeGenerator, FakeMedia, FakePublisher, make_settings


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine, factory = create_session_factory(f"sqlite+aiosqlite:///{tmp_path / 'postflow-test.db'}")
    await create_tables(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
def make_engine(session_factory):
    """Factory: engine wired to fakes. Returns (engine, services)."""

    def _make(generator=None, extractor=None, publisher=None, media=None, **settings_overrides):
        settings = make_settings(**settings_overrides)
        dedup = DedupStore(session_factory)
        extractor = extractor or FakeExtractor()
        services = WorkflowServices(
            settings=settings,
            generator=generator or FakeGenerator(),
            dedup=dedup,
            instances=InstanceStore(session_factory, dedup),
            publisher=publisher or FakePublisher(),
            media=media or FakeMedia(),
            extractors={kind: extractor for kind in ("github", "youtube", "social", "web")},
        )
        return WorkflowEngine(services), services

    return _make
