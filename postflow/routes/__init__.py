"""API route modules."""
from postflow.routes.workflows import router as workflows_router

__all__ = ["workflows_router"]
