"""Workflow engine: start, resume, cancel and inspect durable post workflow instances.

An instance's state lives only in the `workflow_instances` row. A graph run starts from that
row's state and ends either at a terminal outcome or at the human gate, after which the state
is written back and the instance is marked suspended in the same conditional UPDATE. Nothing
stays in memory between a suspension and its resume.
"""
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from postflow.config import Settings, settings as app_settings
from postflow.extractors import default_extractors
from postflow.models.db_models import WorkflowInstance
from postflow.models.schemas import ConfigOverrides, Decision, DecisionAction
from postflow.services.dedup_store import DedupStore
from postflow.services.gemini_service import GeminiGenerator
from postflow.services.instance_store import (
    CANCELLED,
    COMMITTING,
    CREATED,
    NO_CONTENT,
    REJECTED,
    RUNNING,
    SUSPENDED,
    TERMINAL_STATUSES,
    InstanceStore,
)
from postflow.services.media_service import MediaService
from postflow.services.publisher import PublishService, default_clients
from postflow.utils.logging import bind_instance, get_logger
from postflow.workflow.context import WorkflowServices, run_config
from postflow.workflow.errors import (
    InvalidDecision,
    InvalidResumeState,
    UnknownInstance,
    WorkflowError,
)
from postflow.workflow.graph import create_post_graph
from postflow.workflow.state import (
    OUTCOME_COMMITTED,
    OUTCOME_NO_CONTENT,
    OUTCOME_REJECTED,
    OUTCOME_SUSPENDED,
    make_initial_state,
)

logger = get_logger(__name__)

_CLOSING_OUTCOMES = {OUTCOME_NO_CONTENT: NO_CONTENT, OUTCOME_REJECTED: REJECTED}


def validate_decision(decision: Decision, state: dict[str, Any]) -> None:
    """Reject decisions that cannot be applied to the current state. Raises InvalidDecision."""
    edits = decision.edited_fields
    if decision.action == DecisionAction.APPROVE:
        if edits is not None and (edits.post_text is not None or edits.regenerate or edits.remove_asset):
            raise InvalidDecision("approve only accepts schedule_time; use edit to change the post")
        if not (state.get("draft") or "").strip():
            raise InvalidDecision("cannot approve an empty post; supply post_text with an edit")
    elif decision.action == DecisionAction.EDIT:
        if edits is None:
            raise InvalidDecision("edit requires editedFields")
        if edits.regenerate and edits.post_text is not None:
            raise InvalidDecision("post_text and regenerate are mutually exclusive")
        if edits.post_text is not None and not edits.post_text.strip():
            raise InvalidDecision("post_text must not be empty")


class WorkflowEngine:
    def __init__(self, services: WorkflowServices):
        self.services = services
        self.instances: InstanceStore = services.instances
        self.graph = create_post_graph()

    async def create(self, links: list[str], overrides: ConfigOverrides | None = None) -> str:
        links = [link.strip() for link in links if link and link.strip()]
        if not links:
            raise ValueError("at least one link is required")
        overrides = overrides or ConfigOverrides()
        state = make_initial_state(links, overrides.model_dump(mode="json"))
        instance_id = await self.instances.create(state)
        logger.info("instance_created", instance_id=instance_id, links=len(links))
        return instance_id

    async def run(self, instance_id: str) -> WorkflowInstance:
        """Run a created instance up to suspension or a terminal outcome."""
        record = await self.instances.claim(instance_id, CREATED, RUNNING)
        return await self._execute(instance_id, dict(record.state or {}))

    async def start(self, links: list[str], overrides: ConfigOverrides | None = None) -> str:
        instance_id = await self.create(links, overrides)
        await self.run(instance_id)
        return instance_id

    async def resume(self, instance_id: str, decision: Decision) -> WorkflowInstance:
        """
        Apply a human decision to a suspended instance. Only the first caller wins the
        suspended -> running transition; every other caller gets InvalidResumeState and
        the instance is left untouched.
        """
        record = await self.instances.get(instance_id)
        if record is None:
            raise UnknownInstance(instance_id)
        if record.status != SUSPENDED:
            raise InvalidResumeState(instance_id, record.status)
        validate_decision(decision, record.state or {})

        record = await self.instances.claim(instance_id, SUSPENDED, RUNNING)
        state = dict(record.state or {})
        state["decision"] = decision.model_dump(mode="json")
        logger.info("instance_resumed", instance_id=instance_id, action=decision.action.value)
        return await self._execute(instance_id, state)

    async def cancel(self, instance_id: str) -> WorkflowInstance:
        """
        created/suspended: cancelled now. running/committing: cancel requested and honoured
        at the next suspension or before the next platform publish. Terminal: InvalidResumeState.
        """
        record = await self.instances.get(instance_id)
        if record is None:
            raise UnknownInstance(instance_id)
        if record.status in TERMINAL_STATUSES:
            raise InvalidResumeState(instance_id, record.status)
        if record.status in (CREATED, SUSPENDED) and await self.instances.transition(
            instance_id, [CREATED, SUSPENDED], CANCELLED, cancel_requested=True
        ):
            logger.info("instance_cancelled", instance_id=instance_id)
        elif await self.instances.request_cancel(instance_id):
            logger.info("instance_cancel_requested", instance_id=instance_id)
        else:
            current = await self.instances.get(instance_id)
            raise InvalidResumeState(instance_id, current.status if current else None)
        return await self.instances.get(instance_id)

    async def get(self, instance_id: str) -> WorkflowInstance:
        record = await self.instances.get(instance_id)
        if record is None:
            raise UnknownInstance(instance_id)
        return record

    async def list_instances(self, status: str | None = None, limit: int = 50) -> list[WorkflowInstance]:
        return await self.instances.list_instances(status=status, limit=limit)

    async def stale_commits(self) -> list[WorkflowInstance]:
        """Instances whose commit started but never finalized (crash between publish and dedup write)."""
        return await self.instances.list_instances(status=COMMITTING, limit=500)

    async def _execute(self, instance_id: str, state: dict[str, Any]) -> WorkflowInstance:
        bind_instance(instance_id)
        try:
            final = await self.graph.ainvoke(state, config=run_config(self.services, instance_id))
        except InvalidResumeState:
            if await self.instances.is_cancel_requested(instance_id):
                await self.instances.close(instance_id, CANCELLED, state, list(state.get("flags") or []))
                logger.info("instance_cancelled", instance_id=instance_id, stage=state.get("stage"))
                return await self.get(instance_id)
            raise
        except Exception as e:
            logger.exception("instance_failed", instance_id=instance_id, error=str(e))
            await self.instances.mark_failed(instance_id, f"{type(e).__name__}: {e}")
            raise
        return await self._settle(instance_id, final)

    async def _settle(self, instance_id: str, final: dict[str, Any]) -> WorkflowInstance:
        """Persist the end of a graph run. Committed runs were already finalized by the commit node."""
        outcome = final.get("outcome")
        flags = list(final.get("flags") or [])
        try:
            if outcome == OUTCOME_COMMITTED:
                logger.info("instance_committed", instance_id=instance_id)
            elif await self.instances.is_cancel_requested(instance_id):
                await self.instances.close(instance_id, CANCELLED, final, flags)
                logger.info("instance_cancelled", instance_id=instance_id, stage=final.get("stage"))
            elif outcome == OUTCOME_SUSPENDED:
                if not await self.instances.suspend(instance_id, final, flags):
                    # Lost to a concurrent cancel between the check above and the UPDATE
                    await self.instances.close(instance_id, CANCELLED, final, flags)
                else:
                    logger.info("instance_suspended", instance_id=instance_id, flags=flags)
            elif outcome in _CLOSING_OUTCOMES:
                await self.instances.close(instance_id, _CLOSING_OUTCOMES[outcome], final, flags)
                logger.info("instance_closed", instance_id=instance_id, status=_CLOSING_OUTCOMES[outcome])
            else:
                raise WorkflowError(f"graph ended without an outcome (stage={final.get('stage')})")
        except WorkflowError as e:
            logger.error("instance_settle_failed", instance_id=instance_id, error=str(e))
            await self.instances.mark_failed(instance_id, str(e))
            raise
        return await self.get(instance_id)


def build_engine(
    session_factory: async_sessionmaker[AsyncSession],
    scheduler: AsyncIOScheduler | None = None,
    settings: Settings = app_settings,
) -> WorkflowEngine:
    """Wire the production collaborators."""
    dedup = DedupStore(session_factory)
    media = MediaService(settings)
    services = WorkflowServices(
        settings=settings,
        generator=GeminiGenerator(settings),
        dedup=dedup,
        instances=InstanceStore(session_factory, dedup),
        publisher=PublishService(session_factory, default_clients(settings, media), scheduler),
        media=media,
        extractors=default_extractors(settings),
    )
    return WorkflowEngine(services)
