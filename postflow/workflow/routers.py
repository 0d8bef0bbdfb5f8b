"""Conditional-edge routers and node names for the post workflow graph."""
from langgraph.graph import END
from langgraph.types import Send

from postflow.extractors.router import classify_link
from postflow.models.schemas import DecisionAction
from postflow.workflow.state import OUTCOME_NO_CONTENT, ExtractionTask, WorkflowState

EXTRACT = "extract"
AGGREGATE = "aggregate"
GATE = "gate"
REPORT = "report"
DRAFT = "draft"
VALIDATE = "validate"
CONDENSE = "condense"
SELECT_ASSET = "select_asset"
HUMAN_GATE = "human_gate"
APPLY_DECISION = "apply_decision"
COMMIT = "commit"


def route_entry(state: WorkflowState):
    """
    Graph entry. A pending decision means this is a resume; otherwise fan out one
    extract task per link (input index carried along so fan-in can restore order).
    """
    if state.get("decision"):
        return APPLY_DECISION
    links = state.get("links") or []
    if not links:
        return AGGREGATE
    return [
        Send(EXTRACT, ExtractionTask(index=i, link=link, kind=classify_link(link).value))
        for i, link in enumerate(links)
    ]


def route_after_aggregate(state: WorkflowState) -> str:
    return END if state.get("outcome") == OUTCOME_NO_CONTENT else GATE


def route_after_gate(state: WorkflowState) -> str:
    return END if state.get("outcome") == OUTCOME_NO_CONTENT else REPORT


def route_after_validate(state: WorkflowState) -> str:
    if not state.get("draft_status"):
        return CONDENSE
    return HUMAN_GATE if state.get("assets_resolved") else SELECT_ASSET


def route_after_decision(state: WorkflowState) -> str:
    decision = state.get("last_decision") or {}
    action = decision.get("action")
    if action == DecisionAction.APPROVE.value:
        return COMMIT
    if action == DecisionAction.EDIT.value:
        edits = decision.get("edited_fields") or {}
        return DRAFT if edits.get("regenerate") else VALIDATE
    return END
