"""Report Agent: condense surviving sources into one report for the writer."""
from langchain_core.runnables import RunnableConfig

from postflow.services import prompts
from postflow.utils.logging import get_logger
from postflow.workflow.context import get_services
from postflow.workflow.errors import GenerationFailure
from postflow.workflow.state import FLAG_REPORT_FALLBACK, WorkflowState, add_flag

logger = get_logger(__name__)


def sources_context(sources: list[dict], max_chars_per_source: int) -> str:
    blocks = []
    for i, s in enumerate(sources, start=1):
        blocks.append(f"[{i}] {s['kind']} {s['link']}\n{s['text'][:max_chars_per_source]}")
    return "\n\n".join(blocks)


async def report_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """Falls back to the concatenated source texts when generation fails."""
    services = get_services(config)
    settings = services.settings
    context = sources_context(state.get("sources") or [], settings.max_source_chars)
    try:
        report = await services.generator.generate(prompts.report_prompt(settings.business_context), context)
    except GenerationFailure as e:
        logger.warning("report_generation_failed", error=str(e))
        return {"report": context[: settings.max_report_chars], "flags": add_flag(state, FLAG_REPORT_FALLBACK)}
    return {"report": report[: settings.max_report_chars]}
