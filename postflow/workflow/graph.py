"""Compiled LangGraph: extract x N -> aggregate -> gate -> report -> draft/validate/condense -> asset -> human gate.

A resume re-enters at START with a pending decision: apply_decision -> commit | validate | draft | END.
"""
from langgraph.graph import END, START, StateGraph

from postflow.agents.asset_selector import select_asset_agent
from postflow.agents.commit_agent import commit_agent
from postflow.agents.drafting_agent import condense_agent, draft_agent, validate_agent
from postflow.agents.extraction_agent import aggregate_agent, extract_worker
from postflow.agents.gate_agent import gate_agent
from postflow.agents.report_agent import report_agent
from postflow.agents.review_gate import apply_decision_agent, human_gate_agent
from postflow.workflow.routers import (
    AGGREGATE,
    APPLY_DECISION,
    COMMIT,
    CONDENSE,
    DRAFT,
    EXTRACT,
    GATE,
    HUMAN_GATE,
    REPORT,
    SELECT_ASSET,
    VALIDATE,
    route_after_aggregate,
    route_after_decision,
    route_after_gate,
    route_after_validate,
    route_entry,
)
from postflow.workflow.state import WorkflowState


def create_post_graph():
    """Build and compile the workflow graph. No checkpointer: the engine owns persistence."""
    builder = StateGraph(WorkflowState)

    builder.add_node(EXTRACT, extract_worker)
    builder.add_node(AGGREGATE, aggregate_agent)
    builder.add_node(GATE, gate_agent)
    builder.add_node(REPORT, report_agent)
    builder.add_node(DRAFT, draft_agent)
    builder.add_node(VALIDATE, validate_agent)
    builder.add_node(CONDENSE, condense_agent)
    builder.add_node(SELECT_ASSET, select_asset_agent)
    builder.add_node(HUMAN_GATE, human_gate_agent)
    builder.add_node(APPLY_DECISION, apply_decision_agent)
    builder.add_node(COMMIT, commit_agent)

    builder.add_conditional_edges(START, route_entry, [EXTRACT, AGGREGATE, APPLY_DECISION])
    builder.add_edge(EXTRACT, AGGREGATE)
    builder.add_conditional_edges(AGGREGATE, route_after_aggregate, [GATE, END])
    builder.add_conditional_edges(GATE, route_after_gate, [REPORT, END])
    builder.add_edge(REPORT, DRAFT)
    builder.add_edge(DRAFT, VALIDATE)
    builder.add_conditional_edges(VALIDATE, route_after_validate, [CONDENSE, SELECT_ASSET, HUMAN_GATE])
    builder.add_edge(CONDENSE, VALIDATE)
    builder.add_edge(SELECT_ASSET, HUMAN_GATE)
    builder.add_edge(HUMAN_GATE, END)
    builder.add_conditional_edges(APPLY_DECISION, route_after_decision, [COMMIT, VALIDATE, DRAFT, END])
    builder.add_edge(COMMIT, END)

    return builder.compile()
