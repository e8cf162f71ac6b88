import logging

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_current_role, get_store, require_principal
from app.core.exceptions import ResourceNotFoundError
from app.models.user import UserRole
from app.schemas.teacher import TeacherIn, TeacherOut, TeacherPeriodOut
from app.services.periods import DayName
from app.services.store import ScheduleStore
from app.services.timetable import teacher_schedule

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=list[TeacherOut])
async def list_teachers(
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> list[TeacherOut]:
    return await store.get_teachers()


@router.post("/", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
async def create_teacher(
    payload: TeacherIn,
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(require_principal),
) -> TeacherOut:
    teacher = await store.save_teacher(payload)
    logger.info("Created teacher %s", teacher.id)
    return teacher


@router.put("/{teacher_id}", response_model=TeacherOut)
async def update_teacher(
    teacher_id: str,
    payload: TeacherIn,
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(require_principal),
) -> TeacherOut:
    if teacher_id not in {teacher.id for teacher in await store.get_teachers()}:
        raise ResourceNotFoundError("Teacher", teacher_id)
    return await store.save_teacher(payload.model_copy(update={"id": teacher_id}))


@router.delete("/{teacher_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_teacher(
    teacher_id: str,
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(require_principal),
) -> None:
    await store.delete_teacher(teacher_id)
    logger.info("Deleted teacher %s and their base entries", teacher_id)


@router.get("/{teacher_id}/schedule", response_model=list[TeacherPeriodOut], response_model_by_alias=True)
async def get_teacher_schedule(
    teacher_id: str,
    day_name: DayName = Query(alias="dayName"),
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> list[TeacherPeriodOut]:
    return await teacher_schedule(store, teacher_id, day_name)
