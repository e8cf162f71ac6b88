import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status

from app.api.deps import get_current_role, get_store, get_workflow_registry, require_principal
from app.core.config import get_settings
from app.models.user import UserRole
from app.schemas.teacher import TeacherOut
from app.schemas.timetable import (
    CloneDayRequest,
    DoubleBookingOut,
    EffectiveTimetableOut,
    ProposedBaseEntry,
    SaveAttendanceMutation,
    SaveBaseMutation,
    SaveInstructionMutation,
    SaveOverrideMutation,
    TeacherStatusOut,
    TimetableMutation,
)
from app.services.availability import AvailabilityChecker, find_double_bookings
from app.services.periods import DayName, day_name_for, ensure_teaching_period
from app.services.resolver import ScheduleResolver
from app.services.store import ScheduleStore
from app.services.substitution import WorkflowRegistry
from app.services import timetable as timetable_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=EffectiveTimetableOut)
async def get_timetable(
    date_str: date = Query(alias="dateStr"),
    day_name: DayName | None = Query(default=None, alias="dayName"),
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> EffectiveTimetableOut:
    return await timetable_service.get_effective_view(store, date_str, day_name)


@router.post("")
async def save_timetable(
    mutation: Annotated[TimetableMutation, Body(discriminator="type")],
    store: ScheduleStore = Depends(get_store),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    current_role: UserRole = Depends(get_current_role),
) -> dict:
    if isinstance(mutation, SaveBaseMutation):
        if current_role != UserRole.principal:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the principal can edit the base schedule")
        days = await timetable_service.save_base(store, mutation.payload)
        return {"success": True, "type": mutation.type, "days": days}

    if isinstance(mutation, SaveOverrideMutation):
        await timetable_service.save_override(store, mutation.payload)
        return {"success": True, "type": mutation.type}

    if isinstance(mutation, SaveAttendanceMutation):
        workflow = await timetable_service.mark_attendance(
            store,
            registry,
            mutation.payload,
            notification_limit=get_settings().notification_history_limit,
        )
        return {
            "success": True,
            "type": mutation.type,
            "workflow": workflow.to_out().model_dump(mode="json", by_alias=True) if workflow else None,
        }

    if isinstance(mutation, SaveInstructionMutation):
        await timetable_service.save_instruction(store, mutation.payload)
        return {"success": True, "type": mutation.type}

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported mutation type")


@router.post("/clone")
async def clone_base_day(
    payload: CloneDayRequest,
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(require_principal),
) -> dict:
    days = await timetable_service.clone_day(store, payload.source_day)
    return {"success": True, "sourceDay": payload.source_day, "days": days}


@router.get("/status", response_model=TeacherStatusOut)
async def get_teacher_status(
    teacher_id: str = Query(alias="teacherId"),
    date_str: date = Query(alias="dateStr"),
    period_index: int = Query(alias="periodIndex"),
    day_name: DayName | None = Query(default=None, alias="dayName"),
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> TeacherStatusOut:
    ensure_teaching_period(period_index)
    result = await AvailabilityChecker(store).status(
        teacher_id, date_str.isoformat(), day_name or day_name_for(date_str), period_index
    )
    return TeacherStatusOut(teacher_id=teacher_id, status=result.status.value, class_name=result.class_name)


@router.get("/available", response_model=list[TeacherOut])
async def get_available_teachers(
    date_str: date = Query(alias="dateStr"),
    period_index: int = Query(alias="periodIndex"),
    day_name: DayName | None = Query(default=None, alias="dayName"),
    exclude_class_id: list[str] = Query(default=[], alias="excludeClassId"),
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> list[TeacherOut]:
    ensure_teaching_period(period_index)
    return await AvailabilityChecker(store).available_teachers(
        date_str.isoformat(),
        day_name or day_name_for(date_str),
        period_index,
        exclude_class_ids=exclude_class_id,
    )


@router.get("/conflicts", response_model=list[DoubleBookingOut])
async def get_double_bookings(
    date_str: date = Query(alias="dateStr"),
    day_name: DayName | None = Query(default=None, alias="dayName"),
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> list[DoubleBookingOut]:
    schedule = await ScheduleResolver(store).resolve(date_str.isoformat(), day_name or day_name_for(date_str))
    bookings = find_double_bookings(schedule)
    if bookings:
        logger.warning("%d double booking(s) on %s", len(bookings), date_str.isoformat())
    return bookings


@router.get("/suggestions", response_model=list[ProposedBaseEntry])
async def get_suggestions(
    request: Request,
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(require_principal),
) -> list[ProposedBaseEntry]:
    teachers, classes = await store.get_teachers(), await store.get_classes()
    return await request.app.state.suggestions.suggest_base_schedule(teachers, classes)
