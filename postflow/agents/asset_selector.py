"""Asset Selection: pick at most one validated image for the post."""
from langchain_core.runnables import RunnableConfig

from postflow.models.schemas import MediaRef
from postflow.services import prompts
from postflow.utils.logging import get_logger
from postflow.workflow.context import WorkflowServices, get_services
from postflow.workflow.state import (
    FLAG_ASSET_SELECTION_DEGRADED,
    STAGE_SELECTING_ASSET,
    WorkflowState,
    add_flag,
)

logger = get_logger(__name__)


def collect_candidates(sources: list[dict], limit: int) -> list[MediaRef]:
    """Media refs from the sources in order, first occurrence of each URL wins."""
    by_url: dict[str, MediaRef] = {}
    for source in sources:
        for media in source.get("media") or []:
            ref = MediaRef.model_validate(media)
            if ref.url not in by_url:
                by_url[ref.url] = ref
    return list(by_url.values())[:limit]


def describe(ref: MediaRef) -> str:
    return f"{ref.url} ({ref.width}x{ref.height}, {ref.source}) {ref.alt or ''}".strip()


async def _search_candidates(services: WorkflowServices, draft: str) -> list[MediaRef]:
    if not services.settings.unsplash_access_key or not draft:
        return []
    query = await services.generator.generate(prompts.image_query_prompt(), draft)
    return await services.media.search(query.strip().splitlines()[0])


async def pick_asset(services: WorkflowServices, state: WorkflowState) -> tuple[MediaRef | None, bool]:
    """Returns (asset, degraded). degraded means candidates existed but none survived validation."""
    settings = services.settings
    draft = state.get("draft") or ""
    candidates = collect_candidates(state.get("sources") or [], settings.max_asset_candidates)
    candidates += await _search_candidates(services, draft)

    valid = []
    for ref in candidates[: settings.max_asset_candidates]:
        checked = await services.media.validate(ref)
        if checked is not None:
            valid.append(checked)
    logger.info("asset_candidates_checked", candidates=len(candidates), valid=len(valid))

    if not valid:
        return None, bool(candidates)
    if len(valid) == 1:
        return valid[0], False
    order = await services.generator.rank([describe(r) for r in valid], draft)
    return valid[order[0]], False


async def select_asset_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """Skipped for text-only instances. Never fails the workflow: problems mean no asset."""
    services = get_services(config)
    overrides = state.get("overrides") or {}
    update = {"stage": STAGE_SELECTING_ASSET, "assets_resolved": True, "asset": None}
    if overrides.get("text_only"):
        return update

    try:
        asset, degraded = await pick_asset(services, state)
    except Exception as e:
        logger.warning("asset_selection_degraded", error=f"{type(e).__name__}: {e}")
        update["flags"] = add_flag(state, FLAG_ASSET_SELECTION_DEGRADED)
        return update

    if degraded:
        update["flags"] = add_flag(state, FLAG_ASSET_SELECTION_DEGRADED)
    if asset is not None:
        update["asset"] = asset.model_dump()
    return update
