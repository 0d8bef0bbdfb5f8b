"""Human review: the suspension point and the decision that resumes it."""
from langchain_core.runnables import RunnableConfig

from postflow.agents.scheduler_agent import suggest_schedule
from postflow.models.schemas import Decision, DecisionAction, EditedFields
from postflow.utils.helpers import parse_datetime, utcnow
from postflow.utils.logging import get_logger
from postflow.workflow.context import get_services
from postflow.workflow.state import (
    OUTCOME_REJECTED,
    OUTCOME_SUSPENDED,
    STAGE_AWAITING_REVIEW,
    STAGE_CLOSED,
    STAGE_COMMITTING,
    STAGE_DRAFTING,
    WorkflowState,
)

logger = get_logger(__name__)


async def human_gate_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """
    Last node before suspension. Fills in a schedule time if none is set: the instance's
    scheduleTime override, else the next best slot. The graph ends here; the engine
    persists the state and marks the instance suspended.
    """
    settings = get_services(config).settings
    schedule = state.get("schedule_time")
    if not schedule:
        override = parse_datetime((state.get("overrides") or {}).get("schedule_time"))
        if override is not None:
            schedule = override.isoformat()
        elif settings.auto_schedule:
            schedule = suggest_schedule(utcnow(), settings.best_days, settings.best_hours)
    logger.info("awaiting_review", instance_id=state.get("instance_id"), schedule_time=schedule)
    return {"stage": STAGE_AWAITING_REVIEW, "outcome": OUTCOME_SUSPENDED, "schedule_time": schedule}


async def apply_decision_agent(state: WorkflowState) -> dict:
    """Consume the pending decision and merge its edits into the state."""
    decision = Decision.model_validate(state.get("decision") or {})
    edits = decision.edited_fields or EditedFields()
    update: dict = {
        "decision": None,
        "last_decision": decision.model_dump(mode="json"),
        "outcome": None,
    }
    if edits.schedule_time is not None:
        update["schedule_time"] = parse_datetime(edits.schedule_time).isoformat()

    if decision.action == DecisionAction.REJECT:
        update.update(outcome=OUTCOME_REJECTED, stage=STAGE_CLOSED)
    elif decision.action == DecisionAction.APPROVE:
        update["stage"] = STAGE_COMMITTING
    else:
        update.update(stage=STAGE_DRAFTING, draft_status=None)
        if edits.remove_asset:
            update.update(asset=None, assets_resolved=True)
        if edits.regenerate:
            update["feedback"] = edits.feedback
        elif edits.post_text is not None:
            update.update(draft=edits.post_text, draft_candidates=[edits.post_text])

    logger.info("decision_applied", instance_id=state.get("instance_id"), action=decision.action.value)
    return update
