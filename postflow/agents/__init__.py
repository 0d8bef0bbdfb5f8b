"""LangGraph agents in the link-to-post workflow."""
from postflow.agents.asset_selector import select_asset_agent
from postflow.agents.commit_agent import commit_agent
from postflow.agents.drafting_agent import condense_agent, draft_agent, validate_agent
from postflow.agents.extraction_agent import aggregate_agent, extract_worker
from postflow.agents.gate_agent import gate_agent
from postflow.agents.report_agent import report_agent
from postflow.agents.review_gate import apply_decision_agent, human_gate_agent
from postflow.agents.scheduler_agent import suggest_schedule

__all__ = [
    "extract_worker",
    "aggregate_agent",
    "gate_agent",
    "report_agent",
    "draft_agent",
    "validate_agent",
    "condense_agent",
    "select_asset_agent",
    "human_gate_agent",
    "apply_decision_agent",
    "commit_agent",
    "suggest_schedule",
]
