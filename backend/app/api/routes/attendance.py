from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_role, get_store, get_workflow_registry
from app.core.config import get_settings
from app.models.attendance import AttendanceStatus
from app.models.user import UserRole
from app.schemas.timetable import SaveAttendancePayload
from app.schemas.workflow import WorkflowOut
from app.services.store import ScheduleStore
from app.services.substitution import WorkflowRegistry
from app.services.timetable import mark_attendance

router = APIRouter()


@router.get("/attendance", response_model=dict[str, AttendanceStatus])
async def get_attendance(
    date_str: date = Query(alias="dateStr"),
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> dict[str, AttendanceStatus]:
    return await store.get_attendance(date_str.isoformat())


@router.put("/attendance", response_model=WorkflowOut | None)
async def put_attendance(
    payload: SaveAttendancePayload,
    store: ScheduleStore = Depends(get_store),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    _: UserRole = Depends(get_current_role),
) -> WorkflowOut | None:
    workflow = await mark_attendance(
        store,
        registry,
        payload,
        notification_limit=get_settings().notification_history_limit,
    )
    return workflow.to_out() if workflow else None
