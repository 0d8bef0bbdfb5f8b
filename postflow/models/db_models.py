"""SQLAlchemy models. Run migrations (or create_tables in dev) to create tables."""
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, UniqueConstraint, event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from postflow.config import settings
from postflow.utils.helpers import utcnow


class Base(DeclarativeBase):
    pass


class WorkflowInstance(Base):
    """One run of the workflow. Status changes go through conditional UPDATEs in InstanceStore."""

    __tablename__ = "workflow_instances"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    stage: Mapped[str] = mapped_column(String(64), nullable=False, default="created")
    state: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    flags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    cancel_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    commit_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def suspended(self) -> bool:
        return self.status == "suspended"


class DedupRecord(Base):
    """Append-only record of a source identifier that has been published."""

    __tablename__ = "dedup_records"
    __table_args__ = (UniqueConstraint("namespace", "identifier", name="uq_dedup_namespace_identifier"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(64), nullable=False)
    identifier: Mapped[str] = mapped_column(String(2048), nullable=False)
    seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    instance_id: Mapped[str | None] = mapped_column(String(32), nullable=True)


class PublishOutcome(Base):
    """Per-platform result of a commit. Scheduled rows are published later by APScheduler."""

    __tablename__ = "publish_outcomes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instance_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    account: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")  # published | scheduled | failed | skipped
    text: Mapped[str] = mapped_column(Text, nullable=False)
    media_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# Async engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _use_explicit_sqlite_transactions(engine: AsyncEngine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the session transaction on SQLite."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_session_factory(database_url: str, echo: bool = False) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Build an engine and session factory for a URL (used by init_db and tests)."""
    engine = create_async_engine(database_url, echo=echo)
    if database_url.startswith("sqlite"):
        _use_explicit_sqlite_transactions(engine)
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def init_db() -> async_sessionmaker[AsyncSession]:
    """Create async engine and session factory from settings. Call once at app startup."""
    global _engine, _session_factory
    if _session_factory is not None:
        return _session_factory
    if not (settings.database_url or "").strip():
        raise ValueError("DATABASE_URL is not set. Use postgresql+asyncpg://... or sqlite+aiosqlite:///...")
    _engine, _session_factory = create_session_factory(
        settings.database_url,
        echo=settings.log_level.upper() == "DEBUG",
    )
    return _session_factory


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create all tables. Use for dev and tests; prefer Alembic for production."""
    if engine is None:
        init_db()
        engine = _engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
