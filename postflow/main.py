"""FastAPI application: lifecycle, routes, scheduler."""
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from postflow.db import create_tables, dispose_db, init_db
from postflow.routes import workflows_router
from postflow.utils.logging import get_logger, setup_logging
from postflow.workflow.engine import build_engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: logging, DB tables, scheduler, engine. Shutdown: scheduler, DB."""
    setup_logging()
    session_factory = init_db()
    try:
        await create_tables()
    except Exception as e:
        logger.warning("create_tables_failed", error=str(e))

    # AsyncIOScheduler runs publish jobs on this event loop, next to the engine's sessions
    scheduler = AsyncIOScheduler()
    scheduler.start()
    engine = build_engine(session_factory, scheduler=scheduler)
    app.state.engine = engine

    restored = await engine.services.publisher.restore_scheduled()
    if restored:
        logger.info("scheduled_publishes_restored", count=restored)
    stale = await engine.stale_commits()
    if stale:
        logger.warning("stale_commits_detected", instance_ids=[r.id for r in stale])

    yield
    scheduler.shutdown(wait=False)
    await dispose_db()


app = FastAPI(
    title="postflow",
    description="Links in, reviewed and scheduled social posts out",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(workflows_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
