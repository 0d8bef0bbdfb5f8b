"""Database package: session and lifecycle."""
from postflow.models.db_models import (
    DedupRecord,
    PublishOutcome,
    WorkflowInstance,
    create_session_factory,
    create_tables,
    dispose_db,
    init_db,
)

__all__ = [
    "DedupRecord",
    "PublishOutcome",
    "WorkflowInstance",
    "create_session_factory",
    "create_tables",
    "dispose_db",
    "init_db",
]
