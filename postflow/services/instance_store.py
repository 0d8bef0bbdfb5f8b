"""Durable workflow instance records and their status transitions."""
import json
import uuid
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from postflow.models.db_models import WorkflowInstance
from postflow.services.dedup_store import DedupStore
from postflow.utils.helpers import utcnow
from postflow.utils.logging import get_logger
from postflow.workflow.errors import InvalidResumeState, PersistenceFailure, UnknownInstance

logger = get_logger(__name__)

CREATED = "created"
RUNNING = "running"
SUSPENDED = "suspended"
COMMITTING = "committing"
COMPLETED = "completed"
PARTIALLY_COMPLETED = "partially_completed"
COMMIT_FAILED = "commit_failed"
NO_CONTENT = "no_content"
REJECTED = "rejected"
CANCELLED = "cancelled"
FAILED = "failed"

TERMINAL_STATUSES = frozenset(
    {COMPLETED, PARTIALLY_COMPLETED, COMMIT_FAILED, NO_CONTENT, REJECTED, CANCELLED, FAILED}
)


def _jsonable(state: dict[str, Any]) -> dict[str, Any]:
    return json.loads(json.dumps(state, default=str))


class InstanceStore:
    """
    Every status change is a conditional UPDATE on the current status, so two callers
    racing for the same transition cannot both win. Nothing here holds a lock or a
    connection between calls.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], dedup: DedupStore):
        self._session_factory = session_factory
        self.dedup = dedup

    async def create(self, state: dict[str, Any]) -> str:
        instance_id = uuid.uuid4().hex
        record = WorkflowInstance(
            id=instance_id,
            status=CREATED,
            stage="created",
            state=_jsonable({**state, "instance_id": instance_id}),
            flags=[],
            cancel_requested=False,
        )
        try:
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"could not create instance: {e}") from e
        return instance_id

    async def get(self, instance_id: str) -> WorkflowInstance | None:
        async with self._session_factory() as session:
            r = await session.execute(select(WorkflowInstance).where(WorkflowInstance.id == instance_id))
            return r.scalar_one_or_none()

    async def list_instances(self, status: str | None = None, limit: int = 50) -> list[WorkflowInstance]:
        async with self._session_factory() as session:
            query = select(WorkflowInstance).order_by(WorkflowInstance.updated_at.desc()).limit(limit)
            if status:
                query = query.where(WorkflowInstance.status == status)
            r = await session.execute(query)
            return list(r.scalars().all())

    async def transition(
        self,
        instance_id: str,
        from_statuses: Iterable[str],
        to_status: str,
        *,
        require_not_cancelled: bool = False,
        **values: Any,
    ) -> bool:
        """Compare-and-set on status. True only for the caller whose UPDATE matched the row."""
        now = utcnow()
        query = update(WorkflowInstance).where(
            WorkflowInstance.id == instance_id,
            WorkflowInstance.status.in_(list(from_statuses)),
        )
        if require_not_cancelled:
            query = query.where(WorkflowInstance.cancel_requested.is_(False))
        if "state" in values:
            values["state"] = _jsonable(values["state"])
        if to_status in TERMINAL_STATUSES:
            values.setdefault("completed_at", now)
        async with self._session_factory() as session:
            result = await session.execute(query.values(status=to_status, updated_at=now, **values))
            await session.commit()
        return result.rowcount == 1

    async def claim(self, instance_id: str, from_status: str, to_status: str = RUNNING) -> WorkflowInstance:
        """Atomically move from_status -> to_status and return the record, or raise InvalidResumeState."""
        if not await self.transition(instance_id, [from_status], to_status):
            current = await self.get(instance_id)
            if current is None:
                raise UnknownInstance(instance_id)
            raise InvalidResumeState(instance_id, current.status)
        record = await self.get(instance_id)
        if record is None:
            raise UnknownInstance(instance_id)
        return record

    async def suspend(self, instance_id: str, state: dict[str, Any], flags: list[str]) -> bool:
        """
        Persist the full state and set status=suspended in one statement. The instance only
        counts as suspended once this commits. False if the instance was cancelled meanwhile.
        """
        try:
            return await self.transition(
                instance_id,
                [RUNNING],
                SUSPENDED,
                require_not_cancelled=True,
                state=state,
                stage=state.get("stage") or "awaiting_review",
                flags=flags,
            )
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"could not persist suspension of {instance_id}: {e}") from e

    async def close(
        self,
        instance_id: str,
        status: str,
        state: dict[str, Any],
        flags: list[str],
        from_statuses: Iterable[str] = (RUNNING,),
    ) -> bool:
        try:
            return await self.transition(
                instance_id,
                from_statuses,
                status,
                state=state,
                stage=state.get("stage") or "closed",
                flags=flags,
            )
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"could not close {instance_id} as {status}: {e}") from e

    async def mark_failed(self, instance_id: str, error: str) -> bool:
        """
        Best effort: leave the instance in an explicit failed state. Instances already in
        `committing` are left there so interrupted commits stay visible to the operator.
        """
        try:
            return await self.transition(
                instance_id,
                [CREATED, RUNNING],
                FAILED,
                error=error[:4000],
            )
        except SQLAlchemyError as e:
            logger.error("mark_failed_persist_failed", instance_id=instance_id, error=str(e))
            return False

    async def request_cancel(self, instance_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(WorkflowInstance)
                .where(
                    WorkflowInstance.id == instance_id,
                    WorkflowInstance.status.in_([CREATED, RUNNING, COMMITTING]),
                )
                .values(cancel_requested=True, updated_at=utcnow())
            )
            await session.commit()
        return result.rowcount == 1

    async def is_cancel_requested(self, instance_id: str) -> bool:
        async with self._session_factory() as session:
            r = await session.execute(
                select(WorkflowInstance.cancel_requested).where(WorkflowInstance.id == instance_id)
            )
            return bool(r.scalar_one_or_none())

    async def begin_commit(self, instance_id: str) -> None:
        """running -> committing. Raises InvalidResumeState if another caller already committed or it was cancelled."""
        ok = await self.transition(
            instance_id,
            [RUNNING],
            COMMITTING,
            require_not_cancelled=True,
            stage="committing",
            commit_started_at=utcnow(),
        )
        if not ok:
            current = await self.get(instance_id)
            if current is None:
                raise UnknownInstance(instance_id)
            reason = "cancel requested" if current.cancel_requested else current.status
            raise InvalidResumeState(instance_id, current.status, f"cannot commit {instance_id}: {reason}")

    async def finalize_commit(
        self,
        instance_id: str,
        status: str,
        state: dict[str, Any],
        flags: list[str],
        identifiers: list[str],
    ) -> int:
        """
        Write dedup records and the terminal status in one transaction. A crash before this
        commits leaves the instance in `committing`, which is how interrupted commits are found.
        Returns the number of new dedup records.
        """
        now = utcnow()
        try:
            async with self._session_factory() as session:
                added = await self.dedup.stage(session, identifiers, timestamp=now, instance_id=instance_id)
                result = await session.execute(
                    update(WorkflowInstance)
                    .where(WorkflowInstance.id == instance_id, WorkflowInstance.status == COMMITTING)
                    .values(
                        status=status,
                        stage="closed",
                        state=_jsonable(state),
                        flags=flags,
                        updated_at=now,
                        completed_at=now,
                    )
                )
                if result.rowcount != 1:
                    await session.rollback()
                    raise InvalidResumeState(instance_id, None, f"{instance_id} left committing before finalize")
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"could not finalize commit of {instance_id}: {e}") from e
        return added
