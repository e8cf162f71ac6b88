from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from app.models.attendance import AttendanceStatus
from app.schemas.class_section import ClassSectionOut
from app.schemas.teacher import TeacherOut
from app.schemas.timetable import DoubleBookingOut, EffectiveScheduleEntry
from app.services.periods import LUNCH_INDEX, parse_slot_key
from app.services.resolver import ScheduleResolver
from app.services.store import ScheduleStore

UNKNOWN_CLASS_NAME = "Unknown Class"


class TeacherStatus(str, Enum):
    absent = "ABSENT"
    morning_leave = "MORNING_LEAVE"
    afternoon_leave = "AFTERNOON_LEAVE"
    busy = "BUSY"
    free = "FREE"


@dataclass(frozen=True)
class StatusResult:
    status: TeacherStatus
    class_id: str | None = None
    class_name: str | None = None


@dataclass
class DaySnapshot:
    """Everything availability needs for one date, read once."""

    date_str: str
    day_name: str
    schedule: dict[str, EffectiveScheduleEntry]
    attendance: dict[str, AttendanceStatus]
    classes: list[ClassSectionOut] = field(default_factory=list)
    teachers: list[TeacherOut] = field(default_factory=list)

    def class_name(self, class_id: str) -> str:
        for section in self.classes:
            if section.id == class_id:
                return section.name
        return UNKNOWN_CLASS_NAME

    def class_ids(self) -> list[str]:
        return [section.id for section in self.classes]


def leave_status(mark: AttendanceStatus | None, period_index: int) -> TeacherStatus | None:
    if mark == AttendanceStatus.absent:
        return TeacherStatus.absent
    if mark == AttendanceStatus.half_day_before and period_index < LUNCH_INDEX:
        return TeacherStatus.morning_leave
    if mark == AttendanceStatus.half_day_after and period_index > LUNCH_INDEX:
        return TeacherStatus.afternoon_leave
    return None


def find_busy_class(
    schedule: dict[str, EffectiveScheduleEntry],
    teacher_id: str,
    period_index: int,
    exclude_class_ids: Iterable[str] = (),
) -> str | None:
    excluded = set(exclude_class_ids)
    for key, entry in schedule.items():
        class_id, period = parse_slot_key(key)
        if period != period_index or class_id in excluded:
            continue
        if entry.references(teacher_id):
            return class_id
    return None


def find_double_bookings(schedule: dict[str, EffectiveScheduleEntry]) -> list[DoubleBookingOut]:
    """Teachers placed in more than one class at the same period."""
    placements: dict[tuple[str, int], list[str]] = defaultdict(list)
    for key, entry in schedule.items():
        class_id, period = parse_slot_key(key)
        for teacher_id in {entry.teacher_id, entry.split_teacher_id} - {None}:
            placements[(teacher_id, period)].append(class_id)
    return [
        DoubleBookingOut(teacher_id=teacher_id, period_index=period, class_ids=sorted(class_ids))
        for (teacher_id, period), class_ids in sorted(placements.items())
        if len(class_ids) > 1
    ]


class AvailabilityChecker:
    def __init__(self, store: ScheduleStore, resolver: ScheduleResolver | None = None) -> None:
        self.store = store
        self.resolver = resolver or ScheduleResolver(store)

    async def snapshot(self, date_str: str, day_name: str) -> DaySnapshot:
        schedule, attendance, classes, teachers = await asyncio.gather(
            self.resolver.resolve(date_str, day_name),
            self.store.get_attendance(date_str),
            self.store.get_classes(),
            self.store.get_teachers(),
        )
        return DaySnapshot(
            date_str=date_str,
            day_name=day_name,
            schedule=schedule,
            attendance=attendance,
            classes=classes,
            teachers=teachers,
        )

    @staticmethod
    def status_in(snapshot: DaySnapshot, teacher_id: str, period_index: int) -> StatusResult:
        on_leave = leave_status(snapshot.attendance.get(teacher_id), period_index)
        if on_leave is not None:
            return StatusResult(on_leave)
        class_id = find_busy_class(snapshot.schedule, teacher_id, period_index)
        if class_id is not None:
            return StatusResult(TeacherStatus.busy, class_id=class_id, class_name=snapshot.class_name(class_id))
        return StatusResult(TeacherStatus.free)

    @staticmethod
    def is_busy_in(
        snapshot: DaySnapshot,
        teacher_id: str,
        period_index: int,
        exclude_class_ids: Iterable[str] = (),
    ) -> bool:
        return find_busy_class(snapshot.schedule, teacher_id, period_index, exclude_class_ids) is not None

    @classmethod
    def available_in(
        cls,
        snapshot: DaySnapshot,
        period_index: int,
        exclude_class_ids: Iterable[str] = (),
        exclude_teacher_ids: Iterable[str] = (),
    ) -> list[TeacherOut]:
        """Teachers free at a period: not on leave and not teaching outside the excluded classes."""
        excluded_classes = set(exclude_class_ids)
        skipped = set(exclude_teacher_ids)
        return [
            teacher
            for teacher in snapshot.teachers
            if teacher.id not in skipped
            and leave_status(snapshot.attendance.get(teacher.id), period_index) is None
            and not cls.is_busy_in(snapshot, teacher.id, period_index, excluded_classes)
        ]

    async def status(self, teacher_id: str, date_str: str, day_name: str, period_index: int) -> StatusResult:
        return self.status_in(await self.snapshot(date_str, day_name), teacher_id, period_index)

    async def is_busy(
        self,
        teacher_id: str,
        date_str: str,
        day_name: str,
        period_index: int,
        exclude_class_ids: Iterable[str] = (),
    ) -> bool:
        schedule = await self.resolver.resolve(date_str, day_name)
        return find_busy_class(schedule, teacher_id, period_index, exclude_class_ids) is not None

    async def available_teachers(
        self,
        date_str: str,
        day_name: str,
        period_index: int,
        exclude_class_ids: Iterable[str] = (),
        exclude_teacher_ids: Iterable[str] = (),
    ) -> list[TeacherOut]:
        snapshot = await self.snapshot(date_str, day_name)
        return self.available_in(snapshot, period_index, exclude_class_ids, exclude_teacher_ids)
