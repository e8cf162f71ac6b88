from __future__ import annotations

import asyncio
import logging
from datetime import date

from app.core.exceptions import ResourceNotFoundError, ScheduleValidationError, StoreUnavailableError
from app.models.attendance import AttendanceStatus
from app.models.notification import NotificationKind
from app.schemas.teacher import TeacherOut, TeacherPeriodOut
from app.schemas.timetable import (
    EffectiveTimetableOut,
    MergedOverride,
    SaveAttendancePayload,
    SaveBasePayload,
    SaveInstructionPayload,
    SaveOverridePayload,
    ScheduleEntry,
    SubstitutionOverride,
)
from app.services.periods import (
    DAYS,
    day_name_for,
    ensure_school_day,
    ensure_teaching_period,
    later_days,
    parse_slot_key,
    period_label,
    teaching_period_label,
)
from app.services.resolver import ScheduleResolver
from app.services.store import ScheduleStore
from app.services.substitution import SubstitutionWorkflow, WorkflowRegistry

logger = logging.getLogger(__name__)

ATTENDANCE_LABELS = {
    AttendanceStatus.absent: "absent",
    AttendanceStatus.half_day_before: "on morning leave",
    AttendanceStatus.half_day_after: "on afternoon leave",
}


async def require_class(store: ScheduleStore, class_id: str) -> None:
    if class_id not in {section.id for section in await store.get_classes()}:
        raise ScheduleValidationError("Unknown class", details={"classId": class_id})


async def require_teachers(store: ScheduleStore, *teacher_ids: str | None) -> dict[str, TeacherOut]:
    teachers = {teacher.id: teacher for teacher in await store.get_teachers()}
    unknown = sorted({teacher_id for teacher_id in teacher_ids if teacher_id and teacher_id not in teachers})
    if unknown:
        raise ScheduleValidationError("Unknown teacher", details={"teacherIds": unknown})
    return teachers


async def get_effective_view(store: ScheduleStore, date_value: date, day_name: str | None = None) -> EffectiveTimetableOut:
    day_name = ensure_school_day(day_name) if day_name else day_name_for(date_value)
    date_str = date_value.isoformat()
    schedule, attendance, instruction = await asyncio.gather(
        ScheduleResolver(store).resolve(date_str, day_name),
        store.get_attendance(date_str),
        store.get_instruction(date_str),
    )
    return EffectiveTimetableOut(
        date_str=date_value,
        day_name=day_name,
        schedule=schedule,
        attendance=attendance,
        instruction=instruction,
    )


async def save_base(store: ScheduleStore, payload: SaveBasePayload) -> list[str]:
    """Write one base cell, optionally copying it to every later weekday. Returns the days written."""
    ensure_school_day(payload.day_name)
    ensure_teaching_period(payload.period_index)
    await require_class(store, payload.class_id)
    if payload.entry is not None:
        await require_teachers(store, payload.entry.teacher_id, payload.entry.split_teacher_id)

    days = [payload.day_name]
    if payload.apply_to_rest_of_week:
        days.extend(later_days(payload.day_name))
    await asyncio.gather(
        *(store.save_base_entry(day, payload.class_id, payload.period_index, payload.entry) for day in days)
    )
    logger.info(
        "Base %s for %s %s on %s",
        "saved" if payload.entry else "cleared",
        payload.class_id,
        period_label(payload.period_index),
        ", ".join(days),
    )
    return days


async def clone_day(store: ScheduleStore, source_day: str) -> list[str]:
    ensure_school_day(source_day)
    entries: dict[str, ScheduleEntry] = await store.get_base_schedule(source_day)
    targets = [day for day in DAYS if day != source_day]
    await asyncio.gather(*(store.replace_base_day(day, entries) for day in targets))
    logger.info("Cloned %d base entries from %s to %s", len(entries), source_day, ", ".join(targets))
    return targets


async def save_override(store: ScheduleStore, payload: SaveOverridePayload) -> None:
    ensure_teaching_period(payload.period_index)
    classes = {section.id for section in await store.get_classes()}
    if payload.class_id not in classes:
        raise ScheduleValidationError("Unknown class", details={"classId": payload.class_id})

    override = payload.override
    if isinstance(override, SubstitutionOverride):
        await require_teachers(store, override.sub_teacher_id, override.original_teacher_id)
    elif isinstance(override, MergedOverride):
        invalid = [
            class_id for class_id in override.merged_class_ids if class_id == payload.class_id or class_id not in classes
        ]
        if invalid:
            raise ScheduleValidationError("Cannot merge with these classes", details={"mergedClassIds": invalid})

    await store.save_override(payload.date_str.isoformat(), payload.class_id, payload.period_index, override)


async def mark_attendance(
    store: ScheduleStore,
    registry: WorkflowRegistry,
    payload: SaveAttendancePayload,
    *,
    notification_limit: int,
) -> SubstitutionWorkflow | None:
    """Persist an attendance mark and start or dismiss the matching substitution workflow.

    The mark itself is the write the caller asked for; a failure while
    notifying or planning substitutes is logged and leaves the workflow unset.
    """
    teachers = await require_teachers(store, payload.teacher_id)
    date_str = payload.date_str.isoformat()
    await store.mark_attendance(date_str, payload.teacher_id, payload.status)

    label = ATTENDANCE_LABELS.get(payload.status)
    try:
        if label is not None:
            await store.add_notification(
                f"{teachers[payload.teacher_id].name} is {label} on {date_str}",
                NotificationKind.absence,
                notification_limit,
            )
        return await registry.handle_attendance(store, payload.teacher_id, date_str, payload.status)
    except StoreUnavailableError as exc:
        logger.warning("Attendance for %s on %s saved without substitution plan: %s", payload.teacher_id, date_str, exc.message)
        return None


async def save_instruction(store: ScheduleStore, payload: SaveInstructionPayload) -> None:
    await store.save_instruction(payload.date_str.isoformat(), payload.text.strip())


async def teacher_schedule(store: ScheduleStore, teacher_id: str, day_name: str) -> list[TeacherPeriodOut]:
    ensure_school_day(day_name)
    base, classes, teachers = await asyncio.gather(
        store.get_base_schedule(day_name),
        store.get_classes(),
        store.get_teachers(),
    )
    if teacher_id not in {teacher.id for teacher in teachers}:
        raise ResourceNotFoundError("Teacher", teacher_id)
    names = {section.id: section.name for section in classes}

    periods: list[TeacherPeriodOut] = []
    for key, entry in base.items():
        if teacher_id not in entry.teacher_ids():
            continue
        class_id, period_index = parse_slot_key(key)
        is_split = entry.teacher_id != teacher_id
        periods.append(
            TeacherPeriodOut(
                class_id=class_id,
                class_name=names.get(class_id, class_id),
                period_index=period_index,
                label=teaching_period_label(period_index),
                subject=entry.split_subject if is_split else entry.subject,
                is_split=is_split,
            )
        )
    return sorted(periods, key=lambda item: (item.period_index, item.class_id))
