"""Append-only store of processed source identifiers."""
from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from postflow.models.db_models import DedupRecord
from postflow.utils.helpers import utcnow
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

PROCESSED_URLS = "processed-urls"


class DedupStore:
    """
    has/put over a fixed namespace. No delete is exposed; records are cleared
    out of band only. put never overwrites an existing record.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], namespace: str = PROCESSED_URLS):
        self._session_factory = session_factory
        self.namespace = namespace

    async def has(self, identifier: str) -> bool:
        async with self._session_factory() as session:
            r = await session.execute(
                select(DedupRecord.id)
                .where(DedupRecord.namespace == self.namespace, DedupRecord.identifier == identifier)
                .limit(1)
            )
            return r.scalar_one_or_none() is not None

    async def put(self, identifier: str, timestamp: datetime | None = None, instance_id: str | None = None) -> bool:
        """Record identifier as seen. Returns False if it was already present."""
        async with self._session_factory() as session:
            added = await self.stage(session, [identifier], timestamp=timestamp, instance_id=instance_id)
            await session.commit()
        return added == 1

    async def stage(
        self,
        session: AsyncSession,
        identifiers: Iterable[str],
        timestamp: datetime | None = None,
        instance_id: str | None = None,
    ) -> int:
        """
        Add records inside the caller's transaction (the caller commits). Each insert runs in a
        savepoint so a concurrent writer that got there first does not abort the transaction.
        """
        seen_at = timestamp or utcnow()
        added = 0
        for identifier in dict.fromkeys(identifiers):
            r = await session.execute(
                select(DedupRecord.id)
                .where(DedupRecord.namespace == self.namespace, DedupRecord.identifier == identifier)
                .limit(1)
            )
            if r.scalar_one_or_none() is not None:
                continue
            try:
                async with session.begin_nested():
                    session.add(
                        DedupRecord(
                            namespace=self.namespace,
                            identifier=identifier,
                            seen_at=seen_at,
                            instance_id=instance_id,
                        )
                    )
            except IntegrityError:
                logger.info("dedup_record_exists", identifier=identifier, namespace=self.namespace)
                continue
            added += 1
        return added
