"""SQLAlchemy and Pydantic models."""
from postflow.models.db_models import (
    DedupRecord,
    PublishOutcome,
    WorkflowInstance,
    init_db,
)
from postflow.models.schemas import (
    ConfigOverrides,
    ContentRecord,
    Decision,
    DecisionAction,
    EditedFields,
    InstanceOut,
    MediaRef,
    PlatformResult,
    StartWorkflowRequest,
    StartWorkflowResponse,
)

__all__ = [
    "DedupRecord",
    "PublishOutcome",
    "WorkflowInstance",
    "init_db",
    "ConfigOverrides",
    "ContentRecord",
    "Decision",
    "DecisionAction",
    "EditedFields",
    "InstanceOut",
    "MediaRef",
    "PlatformResult",
    "StartWorkflowRequest",
    "StartWorkflowResponse",
]
