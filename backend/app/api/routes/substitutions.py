import logging
from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_role, get_store, get_workflow_registry
from app.core.exceptions import ResourceNotFoundError
from app.models.user import UserRole
from app.schemas.workflow import WorkflowActionsIn, WorkflowActionsOut, WorkflowOut
from app.services.store import ScheduleStore
from app.services.substitution import SubstitutionWorkflow, WorkflowRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


def _workflow_or_404(registry: WorkflowRegistry, teacher_id: str, date_str: date) -> SubstitutionWorkflow:
    workflow = registry.get(teacher_id, date_str.isoformat())
    if workflow is None:
        raise ResourceNotFoundError("Substitution workflow", f"{teacher_id}/{date_str.isoformat()}")
    return workflow


@router.get("/substitutions", response_model=list[WorkflowOut])
async def list_workflows(
    date_str: date = Query(alias="dateStr"),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    _: UserRole = Depends(get_current_role),
) -> list[WorkflowOut]:
    return [workflow.to_out() for workflow in registry.for_date(date_str.isoformat())]


@router.get("/substitutions/{teacher_id}/{date_str}", response_model=WorkflowOut)
async def get_workflow(
    teacher_id: str,
    date_str: date,
    refresh: bool = Query(default=False),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    _: UserRole = Depends(get_current_role),
) -> WorkflowOut:
    workflow = _workflow_or_404(registry, teacher_id, date_str)
    if refresh and workflow.pending:
        await workflow.propose_actions()
    return workflow.to_out()


@router.post("/substitutions/{teacher_id}/{date_str}/actions", response_model=WorkflowActionsOut)
async def apply_actions(
    teacher_id: str,
    date_str: date,
    payload: WorkflowActionsIn,
    store: ScheduleStore = Depends(get_store),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    _: UserRole = Depends(get_current_role),
) -> WorkflowActionsOut:
    workflow = _workflow_or_404(registry, teacher_id, date_str)
    # The store may have switched since the workflow started; writes go to the current one.
    workflow.store = store
    results = await workflow.apply_many(payload.actions)
    failed = [result for result in results if not result.ok]
    if failed:
        logger.warning("%d of %d substitution action(s) failed for %s", len(failed), len(results), teacher_id)
    return WorkflowActionsOut(results=results, workflow=workflow.to_out())


@router.post("/substitutions/{teacher_id}/{date_str}/dismiss", response_model=WorkflowOut)
async def dismiss_workflow(
    teacher_id: str,
    date_str: date,
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    _: UserRole = Depends(get_current_role),
) -> WorkflowOut:
    _workflow_or_404(registry, teacher_id, date_str)
    workflow = await registry.dismiss(teacher_id, date_str.isoformat())
    return workflow.to_out()
