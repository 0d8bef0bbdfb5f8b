"""Duplicate & relevance gate: drop already-processed and off-topic sources."""
from langchain_core.runnables import RunnableConfig

from postflow.services import prompts
from postflow.utils.helpers import parse_json_response
from postflow.utils.logging import get_logger
from postflow.workflow.context import WorkflowServices, get_services
from postflow.workflow.errors import GenerationFailure
from postflow.workflow.state import (
    FLAG_RELEVANCE_CHECK_FAILED,
    OUTCOME_NO_CONTENT,
    STAGE_CLOSED,
    STAGE_DRAFTING,
    WorkflowState,
)

logger = get_logger(__name__)


async def check_relevance(services: WorkflowServices, source: dict) -> tuple[bool, str]:
    """Ask the generator. Raises GenerationFailure if the call fails or the answer is unusable."""
    context = f"Link: {source['link']}\n\n{source['text'][: services.settings.max_source_chars]}"
    text = await services.generator.generate(prompts.relevance_prompt(services.settings.business_context), context)
    data = parse_json_response(text)
    if not isinstance(data, dict) or not isinstance(data.get("relevant"), bool):
        raise GenerationFailure(f"unparseable relevance answer: {text[:200]}")
    return data["relevant"], str(data.get("reason") or "")


async def gate_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    services = get_services(config)
    overrides = state.get("overrides") or {}
    skip_dedup = bool(overrides.get("skip_dedup"))
    skip_relevance = bool(overrides.get("skip_relevance_check"))

    kept = []
    dropped = list(state.get("dropped_sources") or [])
    flags = list(state.get("flags") or [])
    seen: set[str] = set()

    for source in state.get("sources") or []:
        source_id = source["source_id"]
        if source_id in seen:
            dropped.append({"source_id": source_id, "link": source["link"], "reason": "duplicate_in_batch"})
            continue
        seen.add(source_id)

        if not skip_dedup and await services.dedup.has(source_id):
            logger.info("source_already_processed", source_id=source_id)
            dropped.append({"source_id": source_id, "link": source["link"], "reason": "already_processed"})
            continue

        if not skip_relevance:
            try:
                relevant, reason = await check_relevance(services, source)
            except GenerationFailure as e:
                # Unknown relevance: keep the source, make the gap visible
                logger.warning("relevance_check_failed", source_id=source_id, error=str(e))
                if FLAG_RELEVANCE_CHECK_FAILED not in flags:
                    flags.append(FLAG_RELEVANCE_CHECK_FAILED)
            else:
                if not relevant:
                    logger.info("source_not_relevant", source_id=source_id, reason=reason)
                    dropped.append({"source_id": source_id, "link": source["link"], "reason": f"not_relevant: {reason}"})
                    continue
        kept.append(source)

    logger.info("gate_done", kept=len(kept), dropped=len(dropped) - len(state.get("dropped_sources") or []))
    update = {"sources": kept, "dropped_sources": dropped, "flags": flags, "stage": STAGE_DRAFTING}
    if not kept:
        update.update(outcome=OUTCOME_NO_CONTENT, stage=STAGE_CLOSED)
    return update
