"""LangGraph workflow for link-to-post instances."""

def create_post_graph():
    """Lazy import to avoid circular import with postflow.agents."""
    from postflow.workflow.graph import create_post_graph as _create
    return _create()

__all__ = ["create_post_graph"]
