"""LangGraph state schema for the link-to-post workflow."""
from typing import Annotated, Any, TypedDict

# Stage markers (persisted on the instance row as `stage`)
STAGE_EXTRACTING = "extracting"
STAGE_GATING = "gating"
STAGE_DRAFTING = "drafting"
STAGE_SELECTING_ASSET = "selecting_asset"
STAGE_AWAITING_REVIEW = "awaiting_review"
STAGE_COMMITTING = "committing"
STAGE_CLOSED = "closed"

# Outcomes a graph run can end with. The engine maps them onto instance statuses.
OUTCOME_SUSPENDED = "suspended"
OUTCOME_NO_CONTENT = "no_content"
OUTCOME_REJECTED = "rejected"
OUTCOME_COMMITTED = "committed"

# Observable fallback markers
FLAG_RELEVANCE_CHECK_FAILED = "relevance_check_failed"
FLAG_REPORT_FALLBACK = "report_fallback"
FLAG_GENERATION_FAILED = "generation_failed"
FLAG_LENGTH_LIMIT_EXCEEDED = "length_limit_exceeded"
FLAG_ASSET_SELECTION_DEGRADED = "asset_selection_degraded"
FLAG_MEDIA_DROPPED = "media_dropped"


def collect_results(left: list[dict[str, Any]] | None, right: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Fan-in reducer: append task results; an update of None clears the channel."""
    if right is None:
        return []
    return (left or []) + right


class ExtractionTask(TypedDict):
    """Payload of one fan-out Send."""

    index: int
    link: str
    kind: str


class WorkflowState(TypedDict, total=False):
    """State passed between nodes. All keys optional for partial updates; the whole dict is persisted as JSON."""

    instance_id: str
    links: list[str]
    overrides: dict[str, Any]  # ConfigOverrides.model_dump()

    # Fan-in channel: each extract task appends one result, aggregate clears it
    extraction_results: Annotated[list[dict[str, Any]], collect_results]
    failed_links: list[dict[str, Any]]

    # Gate
    sources: list[dict[str, Any]]  # ContentRecord dicts, input order
    dropped_sources: list[dict[str, Any]]

    # Draft / condense
    report: str
    draft: str
    draft_candidates: list[str]
    condense_attempts: int
    draft_status: str | None  # done | gave_up

    # Asset
    assets_resolved: bool
    asset: dict[str, Any] | None  # MediaRef dict

    # Review
    schedule_time: str | None
    decision: dict[str, Any] | None  # pending, consumed by apply_decision
    last_decision: dict[str, Any] | None
    feedback: str | None

    # Commit
    publish_results: list[dict[str, Any]]

    flags: list[str]
    stage: str
    outcome: str | None


def make_initial_state(links: list[str], overrides: dict[str, Any]) -> WorkflowState:
    return {
        "links": list(links),
        "overrides": dict(overrides),
        "extraction_results": [],
        "failed_links": [],
        "sources": [],
        "dropped_sources": [],
        "condense_attempts": 0,
        "draft_candidates": [],
        "draft_status": None,
        "assets_resolved": False,
        "asset": None,
        "schedule_time": None,
        "decision": None,
        "last_decision": None,
        "feedback": None,
        "publish_results": [],
        "flags": [],
        "stage": STAGE_EXTRACTING,
        "outcome": None,
    }


def add_flag(state: WorkflowState, flag: str) -> list[str]:
    """Return the state's flags with `flag` appended once."""
    flags = list(state.get("flags") or [])
    if flag not in flags:
        flags.append(flag)
    return flags
