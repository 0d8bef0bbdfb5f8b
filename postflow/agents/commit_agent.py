"""Commit: publish or schedule on every target platform, then record the sources as processed."""
from langchain_core.runnables import RunnableConfig

from postflow.models.schemas import MediaRef, PlatformResult, PostContent
from postflow.services.instance_store import (
    CANCELLED,
    COMMIT_FAILED,
    COMPLETED,
    PARTIALLY_COMPLETED,
)
from postflow.utils.helpers import parse_datetime
from postflow.utils.logging import get_logger
from postflow.workflow.context import get_services
from postflow.workflow.state import (
    FLAG_MEDIA_DROPPED,
    OUTCOME_COMMITTED,
    STAGE_CLOSED,
    WorkflowState,
    add_flag,
)

logger = get_logger(__name__)


def commit_status(results: list[PlatformResult]) -> str:
    succeeded = [r for r in results if r.success]
    skipped = [r for r in results if r.status == "skipped"]
    if results and len(succeeded) == len(results):
        return COMPLETED
    if succeeded:
        return PARTIALLY_COMPLETED
    return CANCELLED if skipped else COMMIT_FAILED


async def commit_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """
    1. running -> committing (fails with InvalidResumeState if cancelled or already committed).
    2. One publish per platform, in configured order; once a cancel request is seen the
       remaining platforms are skipped. Platforms already published are not retracted.
    3. Dedup records and the terminal status in one transaction. Sources are only recorded
       when at least one platform succeeded.
    """
    services = get_services(config)
    instance_id = state["instance_id"]
    overrides = state.get("overrides") or {}

    await services.instances.begin_commit(instance_id)

    asset = state.get("asset")
    content = PostContent(text=state.get("draft") or "", media=MediaRef.model_validate(asset) if asset else None)
    schedule = parse_datetime(state.get("schedule_time"))
    account = overrides.get("target_account")

    results: list[PlatformResult] = []
    cancelled = False
    for platform in services.settings.target_platforms:
        if not cancelled and await services.instances.is_cancel_requested(instance_id):
            logger.warning("commit_cancel_observed", instance_id=instance_id, remaining_from=platform)
            cancelled = True
        if cancelled:
            results.append(PlatformResult(platform=platform, success=False, status="skipped", detail="cancelled"))
            continue
        result = await services.publisher.publish(
            platform, content, schedule, account=account, instance_id=instance_id
        )
        logger.info("platform_result", instance_id=instance_id, platform=platform, status=result.status)
        results.append(result)

    status = commit_status(results)
    flags = add_flag(state, FLAG_MEDIA_DROPPED) if any(r.media_dropped for r in results) else list(state.get("flags") or [])
    identifiers = [s["source_id"] for s in state.get("sources") or []] if any(r.success for r in results) else []

    update = {
        "publish_results": [r.model_dump(mode="json") for r in results],
        "flags": flags,
        "stage": STAGE_CLOSED,
        "outcome": OUTCOME_COMMITTED,
    }
    added = await services.instances.finalize_commit(instance_id, status, {**state, **update}, flags, identifiers)
    logger.info("commit_finalized", instance_id=instance_id, status=status, dedup_records_added=added)
    return update
