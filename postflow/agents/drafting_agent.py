"""Draft / Validate / Condense loop.

Draft generates one candidate from the report, Validate checks it against the strictest
target-platform limit (links excluded), Condense asks for a shorter rewrite. Condense runs at
most `max_condense_attempts` times per instance; after that the longest candidate of the
current round is accepted and the instance is flagged `length_limit_exceeded`.
"""
from langchain_core.runnables import RunnableConfig

from postflow.config import Settings
from postflow.services import prompts
from postflow.utils.helpers import post_length
from postflow.utils.logging import get_logger
from postflow.workflow.context import get_services
from postflow.workflow.errors import GenerationFailure
from postflow.workflow.state import (
    FLAG_GENERATION_FAILED,
    FLAG_LENGTH_LIMIT_EXCEEDED,
    STAGE_DRAFTING,
    WorkflowState,
    add_flag,
)

logger = get_logger(__name__)

DRAFT_DONE = "done"
DRAFT_GAVE_UP = "gave_up"

DEFAULT_CHAR_LIMIT = 280


def length_limit(settings: Settings) -> int:
    """Strictest limit among the target platforms."""
    limits = [settings.platform_char_limits[p] for p in settings.target_platforms if p in settings.platform_char_limits]
    return min(limits) if limits else DEFAULT_CHAR_LIMIT


async def draft_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """Generate a fresh candidate. Retries up to the condense ceiling, then leaves the draft empty."""
    services = get_services(config)
    settings = services.settings
    prompt = prompts.draft_prompt(
        settings.business_context,
        settings.post_style,
        length_limit(settings),
        [s["link"] for s in state.get("sources") or []],
        feedback=state.get("feedback"),
    )
    text = ""
    for attempt in range(1, settings.max_condense_attempts + 1):
        try:
            text = await services.generator.generate(prompt, state.get("report") or "")
            break
        except GenerationFailure as e:
            logger.warning("draft_generation_failed", attempt=attempt, error=str(e))

    update = {
        "stage": STAGE_DRAFTING,
        "draft": text,
        "draft_candidates": [text] if text else [],
        "draft_status": None,
    }
    if not text:
        update["flags"] = add_flag(state, FLAG_GENERATION_FAILED)
    else:
        logger.info("draft_generated", length=post_length(text))
    return update


async def validate_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    settings = get_services(config).settings
    limit = length_limit(settings)
    text = state.get("draft") or ""
    length = post_length(text)
    if length <= limit:
        return {"draft_status": DRAFT_DONE}

    attempts = state.get("condense_attempts") or 0
    if attempts < settings.max_condense_attempts:
        return {"draft_status": None}

    candidates = state.get("draft_candidates") or [text]
    chosen = max(candidates, key=post_length)
    logger.warning("length_limit_exceeded", length=post_length(chosen), limit=limit, condense_attempts=attempts)
    return {
        "draft": chosen,
        "draft_status": DRAFT_GAVE_UP,
        "flags": add_flag(state, FLAG_LENGTH_LIMIT_EXCEEDED),
    }


async def condense_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """One shortening call. The attempt counts even when the call fails."""
    services = get_services(config)
    attempts = (state.get("condense_attempts") or 0) + 1
    text = state.get("draft") or ""
    prompt = prompts.condense_prompt(length_limit(services.settings), post_length(text))
    try:
        shorter = await services.generator.generate(prompt, text)
    except GenerationFailure as e:
        logger.warning("condense_failed", attempt=attempts, error=str(e))
        return {"condense_attempts": attempts}
    logger.info("condensed", attempt=attempts, before=post_length(text), after=post_length(shorter))
    return {
        "condense_attempts": attempts,
        "draft": shorter,
        "draft_candidates": [*(state.get("draft_candidates") or []), shorter],
    }
