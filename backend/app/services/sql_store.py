from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import date
from typing import TypeVar

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StoreUnavailableError
from app.models.attendance import AttendanceStatus, TeacherAttendance
from app.models.class_section import ClassSection
from app.models.notification import Notification, NotificationKind
from app.models.teacher import Teacher
from app.models.timetable import BaseScheduleEntry, DailyInstruction, DailyOverride, OverrideType
from app.schemas.class_section import ClassSectionIn, ClassSectionOut
from app.schemas.notification import NotificationOut
from app.schemas.teacher import TeacherIn, TeacherOut
from app.schemas.timetable import (
    DailyOverridePayload,
    ScheduleEntry,
    override_from_dict,
    override_to_dict,
)
from app.services.periods import parse_slot_key, slot_key
from app.services.store import DEFAULT_CLASSES, ScheduleStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_date(date_str: str) -> date:
    return date.fromisoformat(date_str)


def _entry_from_row(row: BaseScheduleEntry) -> ScheduleEntry:
    return ScheduleEntry(
        teacher_id=row.teacher_id,
        subject=row.subject,
        note=row.note,
        split_teacher_id=row.split_teacher_id,
        split_subject=row.split_subject,
    )


class SqlScheduleStore(ScheduleStore):
    """Relational store on a SQLAlchemy session factory.

    Each call opens its own session on a worker thread, so calls for
    different keys may run concurrently.
    """

    backend_name = "database"

    def __init__(self, session_factory: Callable[[], Session], *, timeout_seconds: float = 10.0) -> None:
        self._session_factory = session_factory
        self._timeout = timeout_seconds

    @property
    def session_factory(self) -> Callable[[], Session]:
        return self._session_factory

    async def _run(self, fn: Callable[..., T], *args) -> T:
        operation = fn.__name__.lstrip("_")
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._in_session, fn, *args), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Store operation %s timed out after %.1fs", operation, self._timeout)
            raise StoreUnavailableError(
                f"Store operation {operation} timed out", details={"operation": operation}
            ) from exc
        except SQLAlchemyError as exc:
            logger.warning("Store operation %s failed", operation, exc_info=True)
            raise StoreUnavailableError(
                f"Store operation {operation} failed", details={"operation": operation}
            ) from exc

    def _in_session(self, fn: Callable[..., T], *args) -> T:
        with self._session_factory() as db:
            try:
                result = fn(db, *args)
                db.commit()
                return result
            except Exception:
                db.rollback()
                raise

    # registries

    async def get_classes(self) -> list[ClassSectionOut]:
        return await self._run(self._get_classes)

    @staticmethod
    def _get_classes(db: Session) -> list[ClassSectionOut]:
        rows = db.execute(select(ClassSection).order_by(ClassSection.sort_order, ClassSection.id)).scalars()
        return [ClassSectionOut.model_validate(row) for row in rows]

    async def save_class(self, section: ClassSectionIn) -> ClassSectionOut:
        return await self._run(self._save_class, section)

    @staticmethod
    def _save_class(db: Session, section: ClassSectionIn) -> ClassSectionOut:
        row = db.get(ClassSection, section.id)
        if row is None:
            next_order = db.execute(select(func.coalesce(func.max(ClassSection.sort_order), -1))).scalar_one() + 1
            row = ClassSection(id=section.id, sort_order=next_order)
            db.add(row)
        row.name = section.name
        row.section = section.section
        db.flush()
        return ClassSectionOut.model_validate(row)

    async def delete_class(self, class_id: str) -> None:
        await self._run(self._delete_class, class_id)

    @staticmethod
    def _delete_class(db: Session, class_id: str) -> None:
        # Explicit cascade; SQLite does not enforce the foreign keys by default.
        db.execute(delete(BaseScheduleEntry).where(BaseScheduleEntry.class_id == class_id))
        db.execute(delete(DailyOverride).where(DailyOverride.class_id == class_id))
        db.execute(delete(ClassSection).where(ClassSection.id == class_id))

    async def seed_default_classes(self) -> bool:
        return await self._run(self._seed_default_classes)

    @staticmethod
    def _seed_default_classes(db: Session) -> bool:
        if db.execute(select(func.count()).select_from(ClassSection)).scalar_one():
            return False
        for index, section in enumerate(DEFAULT_CLASSES):
            db.add(ClassSection(id=section.id, name=section.name, section=section.section, sort_order=index))
        return True

    async def get_teachers(self) -> list[TeacherOut]:
        return await self._run(self._get_teachers)

    @staticmethod
    def _get_teachers(db: Session) -> list[TeacherOut]:
        rows = db.execute(select(Teacher).order_by(Teacher.name)).scalars()
        return [TeacherOut.model_validate(row) for row in rows]

    async def save_teacher(self, teacher: TeacherIn) -> TeacherOut:
        return await self._run(self._save_teacher, teacher)

    @staticmethod
    def _save_teacher(db: Session, teacher: TeacherIn) -> TeacherOut:
        teacher_id = teacher.id or str(uuid.uuid4())
        row = db.get(Teacher, teacher_id)
        if row is None:
            row = Teacher(id=teacher_id)
            db.add(row)
        row.name = teacher.name
        row.initials = teacher.initials
        row.color = teacher.color
        row.subject = teacher.subject
        db.flush()
        return TeacherOut.model_validate(row)

    async def delete_teacher(self, teacher_id: str) -> None:
        await self._run(self._delete_teacher, teacher_id)

    @staticmethod
    def _delete_teacher(db: Session, teacher_id: str) -> None:
        db.execute(
            delete(BaseScheduleEntry).where(
                or_(BaseScheduleEntry.teacher_id == teacher_id, BaseScheduleEntry.split_teacher_id == teacher_id)
            )
        )
        db.execute(delete(Teacher).where(Teacher.id == teacher_id))

    # base schedule

    async def get_base_schedule(self, day_name: str) -> dict[str, ScheduleEntry]:
        return await self._run(self._get_base_schedule, day_name)

    @staticmethod
    def _get_base_schedule(db: Session, day_name: str) -> dict[str, ScheduleEntry]:
        rows = db.execute(select(BaseScheduleEntry).where(BaseScheduleEntry.day_name == day_name)).scalars()
        return {slot_key(row.class_id, row.period_index): _entry_from_row(row) for row in rows}

    async def save_base_entry(
        self,
        day_name: str,
        class_id: str,
        period_index: int,
        entry: ScheduleEntry | None,
    ) -> None:
        await self._run(self._save_base_entry, day_name, class_id, period_index, entry)

    @staticmethod
    def _save_base_entry(
        db: Session,
        day_name: str,
        class_id: str,
        period_index: int,
        entry: ScheduleEntry | None,
    ) -> None:
        row = db.execute(
            select(BaseScheduleEntry).where(
                BaseScheduleEntry.day_name == day_name,
                BaseScheduleEntry.class_id == class_id,
                BaseScheduleEntry.period_index == period_index,
            )
        ).scalar_one_or_none()
        if entry is None:
            if row is not None:
                db.delete(row)
            return
        if row is None:
            row = BaseScheduleEntry(day_name=day_name, class_id=class_id, period_index=period_index)
            db.add(row)
        row.teacher_id = entry.teacher_id
        row.subject = entry.subject
        row.note = entry.note
        row.split_teacher_id = entry.split_teacher_id
        row.split_subject = entry.split_subject

    async def replace_base_day(self, day_name: str, entries: dict[str, ScheduleEntry]) -> None:
        await self._run(self._replace_base_day, day_name, entries)

    @staticmethod
    def _replace_base_day(db: Session, day_name: str, entries: dict[str, ScheduleEntry]) -> None:
        db.execute(delete(BaseScheduleEntry).where(BaseScheduleEntry.day_name == day_name))
        for key, entry in entries.items():
            class_id, period_index = parse_slot_key(key)
            db.add(
                BaseScheduleEntry(
                    day_name=day_name,
                    class_id=class_id,
                    period_index=period_index,
                    teacher_id=entry.teacher_id,
                    subject=entry.subject,
                    note=entry.note,
                    split_teacher_id=entry.split_teacher_id,
                    split_subject=entry.split_subject,
                )
            )

    # overrides

    async def get_overrides(self, date_str: str) -> dict[str, DailyOverridePayload]:
        return await self._run(self._get_overrides, date_str)

    @staticmethod
    def _get_overrides(db: Session, date_str: str) -> dict[str, DailyOverridePayload]:
        rows = db.execute(select(DailyOverride).where(DailyOverride.override_date == _as_date(date_str))).scalars()
        return {slot_key(row.class_id, row.period_index): override_from_dict(row.payload) for row in rows}

    async def save_override(
        self,
        date_str: str,
        class_id: str,
        period_index: int,
        override: DailyOverridePayload | None,
    ) -> None:
        await self._run(self._save_override, date_str, class_id, period_index, override)

    @staticmethod
    def _save_override(
        db: Session,
        date_str: str,
        class_id: str,
        period_index: int,
        override: DailyOverridePayload | None,
    ) -> None:
        row = db.execute(
            select(DailyOverride).where(
                DailyOverride.override_date == _as_date(date_str),
                DailyOverride.class_id == class_id,
                DailyOverride.period_index == period_index,
            )
        ).scalar_one_or_none()
        if override is None:
            if row is not None:
                db.delete(row)
            return
        if row is None:
            row = DailyOverride(override_date=_as_date(date_str), class_id=class_id, period_index=period_index)
            db.add(row)
        row.override_type = OverrideType(override.type)
        row.original_teacher_id = override.original_teacher_id
        row.payload = override_to_dict(override)

    # attendance

    async def get_attendance(self, date_str: str) -> dict[str, AttendanceStatus]:
        return await self._run(self._get_attendance, date_str)

    @staticmethod
    def _get_attendance(db: Session, date_str: str) -> dict[str, AttendanceStatus]:
        rows = db.execute(
            select(TeacherAttendance).where(TeacherAttendance.attendance_date == _as_date(date_str))
        ).scalars()
        return {row.teacher_id: row.status for row in rows}

    async def mark_attendance(self, date_str: str, teacher_id: str, status: AttendanceStatus) -> None:
        await self._run(self._mark_attendance, date_str, teacher_id, status)

    @staticmethod
    def _mark_attendance(db: Session, date_str: str, teacher_id: str, status: AttendanceStatus) -> None:
        row = db.execute(
            select(TeacherAttendance).where(
                TeacherAttendance.attendance_date == _as_date(date_str),
                TeacherAttendance.teacher_id == teacher_id,
            )
        ).scalar_one_or_none()
        if status == AttendanceStatus.present:
            if row is not None:
                db.delete(row)
            return
        if row is None:
            row = TeacherAttendance(attendance_date=_as_date(date_str), teacher_id=teacher_id)
            db.add(row)
        row.status = status

    # per-day records

    async def get_instruction(self, date_str: str) -> str:
        return await self._run(self._get_instruction, date_str)

    @staticmethod
    def _get_instruction(db: Session, date_str: str) -> str:
        row = db.get(DailyInstruction, _as_date(date_str))
        return row.text if row else ""

    async def save_instruction(self, date_str: str, text: str) -> None:
        await self._run(self._save_instruction, date_str, text)

    @staticmethod
    def _save_instruction(db: Session, date_str: str, text: str) -> None:
        row = db.get(DailyInstruction, _as_date(date_str))
        if row is None:
            row = DailyInstruction(instruction_date=_as_date(date_str))
            db.add(row)
        row.text = text

    async def add_notification(self, message: str, kind: NotificationKind, limit: int) -> NotificationOut:
        return await self._run(self._add_notification, message, kind, limit)

    @staticmethod
    def _add_notification(db: Session, message: str, kind: NotificationKind, limit: int) -> NotificationOut:
        row = Notification(message=message, kind=kind, is_read=False)
        db.add(row)
        db.flush()
        db.refresh(row)
        keep_ids = select(Notification.id).order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        db.execute(delete(Notification).where(Notification.id.not_in(keep_ids)))
        return NotificationOut.model_validate(row)

    async def get_notifications(self) -> list[NotificationOut]:
        return await self._run(self._get_notifications)

    @staticmethod
    def _get_notifications(db: Session) -> list[NotificationOut]:
        rows = db.execute(select(Notification).order_by(Notification.created_at.desc(), Notification.id.desc())).scalars()
        return [NotificationOut.model_validate(row) for row in rows]

    async def mark_notifications_read(self) -> None:
        await self._run(self._mark_notifications_read)

    @staticmethod
    def _mark_notifications_read(db: Session) -> None:
        db.execute(update(Notification).values(is_read=True))

    async def clear_notifications(self) -> None:
        await self._run(self._clear_notifications)

    @staticmethod
    def _clear_notifications(db: Session) -> None:
        db.execute(delete(Notification))
