"""Fan-out worker and fan-in aggregation for link extraction."""
import asyncio

from langchain_core.runnables import RunnableConfig

from postflow.models.schemas import ContentRecord
from postflow.utils.helpers import normalize_url
from postflow.utils.logging import get_logger
from postflow.workflow.context import get_services
from postflow.workflow.errors import ExtractionFailure
from postflow.workflow.state import (
    OUTCOME_NO_CONTENT,
    STAGE_CLOSED,
    STAGE_GATING,
    ExtractionTask,
    WorkflowState,
)

logger = get_logger(__name__)


async def extract_worker(task: ExtractionTask, config: RunnableConfig) -> dict:
    """
    Run one adapter under the extraction timeout. Always returns a result: any failure,
    timeout included, becomes ok=False so sibling tasks are unaffected.
    """
    services = get_services(config)
    result = {"index": task["index"], "link": task["link"], "kind": task["kind"], "ok": False}
    extractor = services.extractors.get(task["kind"])
    if extractor is None:
        result["error"] = f"no extractor for kind {task['kind']}"
        return {"extraction_results": [result]}
    try:
        content = await asyncio.wait_for(
            extractor.extract(task["link"]),
            timeout=services.settings.extraction_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("extraction_timeout", link=task["link"], kind=task["kind"])
        result["error"] = "timeout"
    except ExtractionFailure as e:
        logger.warning("extraction_failed", link=task["link"], kind=task["kind"], reason=e.reason)
        result["error"] = e.reason
    except Exception as e:
        logger.exception("extraction_error", link=task["link"], kind=task["kind"], error=str(e))
        result["error"] = str(e) or type(e).__name__
    else:
        result.update(
            ok=True,
            content=content.content,
            media=[m.model_dump() for m in content.media],
        )
    return {"extraction_results": [result]}


async def aggregate_agent(state: WorkflowState) -> dict:
    """Join point: restore input order, keep successes, record failures."""
    results = sorted(state.get("extraction_results") or [], key=lambda r: r["index"])
    sources = []
    failed = []
    for r in results:
        if r.get("ok"):
            record = ContentRecord(
                source_id=normalize_url(r["link"]),
                link=r["link"],
                kind=r["kind"],
                text=r.get("content") or "",
                media=r.get("media") or [],
            )
            sources.append(record.model_dump())
        else:
            failed.append({"link": r["link"], "kind": r["kind"], "error": r.get("error")})

    logger.info("extraction_aggregated", succeeded=len(sources), failed=len(failed))
    update = {"extraction_results": None, "sources": sources, "failed_links": failed, "stage": STAGE_GATING}
    if not sources:
        update.update(outcome=OUTCOME_NO_CONTENT, stage=STAGE_CLOSED)
    return update
