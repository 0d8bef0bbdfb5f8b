"""Workflow instances: start, resume with a human decision, cancel, inspect."""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from postflow.models.schemas import (
    Decision,
    InstanceOut,
    StartWorkflowRequest,
    StartWorkflowResponse,
)
from postflow.utils.logging import get_logger
from postflow.workflow.engine import WorkflowEngine
from postflow.workflow.errors import (
    InvalidDecision,
    InvalidResumeState,
    PersistenceFailure,
    UnknownInstance,
    WorkflowError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])


def get_engine(request: Request) -> WorkflowEngine:
    """Dependency: the engine built at startup."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Workflow engine not initialized")
    return engine


async def run_instance(engine: WorkflowEngine, instance_id: str) -> None:
    """Background task body. Failures are already recorded on the instance by the engine."""
    try:
        await engine.run(instance_id)
    except WorkflowError as e:
        logger.error("background_run_failed", instance_id=instance_id, error=str(e))


def _to_http(e: WorkflowError) -> HTTPException:
    if isinstance(e, UnknownInstance):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidResumeState):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidDecision):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, PersistenceFailure):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=StartWorkflowResponse, status_code=202)
async def start_workflow(
    body: StartWorkflowRequest,
    background_tasks: BackgroundTasks,
    engine: WorkflowEngine = Depends(get_engine),
):
    """Create an instance and run it in the background up to the review point."""
    try:
        instance_id = await engine.create(body.links, body.config_overrides)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except WorkflowError as e:
        raise _to_http(e)
    background_tasks.add_task(run_instance, engine, instance_id)
    return StartWorkflowResponse(instance_id=instance_id, status="created")


@router.post("/{instance_id}/resume", response_model=InstanceOut)
async def resume_workflow(
    instance_id: str,
    body: Decision,
    engine: WorkflowEngine = Depends(get_engine),
):
    """Apply approve / edit / reject. 409 unless the instance is suspended."""
    try:
        record = await engine.resume(instance_id, body)
    except WorkflowError as e:
        raise _to_http(e)
    return InstanceOut.model_validate(record)


@router.post("/{instance_id}/cancel", response_model=InstanceOut)
async def cancel_workflow(instance_id: str, engine: WorkflowEngine = Depends(get_engine)):
    try:
        record = await engine.cancel(instance_id)
    except WorkflowError as e:
        raise _to_http(e)
    return InstanceOut.model_validate(record)


@router.get("/{instance_id}", response_model=InstanceOut)
async def get_workflow(instance_id: str, engine: WorkflowEngine = Depends(get_engine)):
    try:
        record = await engine.get(instance_id)
    except WorkflowError as e:
        raise _to_http(e)
    return InstanceOut.model_validate(record)


@router.get("", response_model=list[InstanceOut])
async def list_workflows(
    status: str | None = None,
    limit: int = 50,
    engine: WorkflowEngine = Depends(get_engine),
):
    """List instances, most recently updated first. `status=committing` lists interrupted commits."""
    records = await engine.list_instances(status=status, limit=min(max(limit, 1), 200))
    return [InstanceOut.model_validate(r) for r in records]
