from __future__ import annotations

import asyncio
import copy
import json
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from app.core.exceptions import StoreUnavailableError
from app.models.attendance import AttendanceStatus
from app.models.notification import NotificationKind
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


def _empty_document() -> dict[str, Any]:
    return {
        "teachers": [],
        "classes": [],
        "baseSchedule": {},
        "overrides": {},
        "attendance": {},
        "instructions": {},
        "notifications": [],
        "lastUpdated": None,
    }


def _entry_to_dict(entry: ScheduleEntry) -> dict[str, Any]:
    return entry.model_dump(by_alias=True, exclude_none=True)


class LocalCacheStore(ScheduleStore):
    """Single JSON document on local disk.

    Used when the service is configured for local storage and as the offline
    fallback when the database cannot be reached. Writes go through one lock
    and are flushed to disk before the call returns.
    """

    backend_name = "local"

    def __init__(self, path: Path, *, timeout_seconds: float = 10.0) -> None:
        self._path = Path(path)
        self._timeout = timeout_seconds
        self._lock = asyncio.Lock()
        self._document: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return _empty_document()
        with self._path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        document = _empty_document()
        document.update(raw)
        return document

    def _flush(self, document: dict[str, Any]) -> None:
        document["lastUpdated"] = datetime.now(timezone.utc).isoformat()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2, sort_keys=True)
        tmp_path.replace(self._path)

    async def _document_for(self, operation: str) -> dict[str, Any]:
        if self._document is None:
            try:
                self._document = await asyncio.wait_for(asyncio.to_thread(self._load), timeout=self._timeout)
            except asyncio.TimeoutError as exc:
                raise StoreUnavailableError(
                    f"Local cache read timed out during {operation}", details={"operation": operation}
                ) from exc
            except (OSError, ValueError) as exc:
                logger.warning("Local cache at %s is unreadable", self._path, exc_info=True)
                raise StoreUnavailableError(
                    f"Local cache is unreadable during {operation}",
                    details={"operation": operation, "path": str(self._path)},
                ) from exc
        return self._document

    async def _read(self, operation: str, fn: Callable[[dict[str, Any]], T]) -> T:
        async with self._lock:
            return fn(await self._document_for(operation))

    async def _write(self, operation: str, fn: Callable[[dict[str, Any]], T]) -> T:
        async with self._lock:
            # The cached document only changes once the new one is on disk.
            document = copy.deepcopy(await self._document_for(operation))
            result = fn(document)
            try:
                await asyncio.wait_for(asyncio.to_thread(self._flush, document), timeout=self._timeout)
            except asyncio.TimeoutError as exc:
                # The flush thread may still finish; re-read from disk next time.
                self._document = None
                raise StoreUnavailableError(
                    f"Local cache write timed out during {operation}", details={"operation": operation}
                ) from exc
            except OSError as exc:
                logger.warning("Local cache write to %s failed", self._path, exc_info=True)
                self._document = None
                raise StoreUnavailableError(
                    f"Local cache write failed during {operation}",
                    details={"operation": operation, "path": str(self._path)},
                ) from exc
            self._document = document
            return result

    # registries

    async def get_classes(self) -> list[ClassSectionOut]:
        return await self._read(
            "get_classes", lambda doc: [ClassSectionOut.model_validate(item) for item in doc["classes"]]
        )

    async def save_class(self, section: ClassSectionIn) -> ClassSectionOut:
        def apply(doc: dict[str, Any]) -> ClassSectionOut:
            stored = section.model_dump(mode="json")
            for index, item in enumerate(doc["classes"]):
                if item["id"] == section.id:
                    doc["classes"][index] = stored
                    break
            else:
                doc["classes"].append(stored)
            return ClassSectionOut.model_validate(stored)

        return await self._write("save_class", apply)

    async def delete_class(self, class_id: str) -> None:
        def apply(doc: dict[str, Any]) -> None:
            doc["classes"] = [item for item in doc["classes"] if item["id"] != class_id]
            for bucket in ("baseSchedule", "overrides"):
                for cells in doc[bucket].values():
                    for key in [key for key in cells if parse_slot_key(key)[0] == class_id]:
                        del cells[key]

        await self._write("delete_class", apply)

    async def seed_default_classes(self) -> bool:
        def apply(doc: dict[str, Any]) -> bool:
            if doc["classes"]:
                return False
            doc["classes"] = [section.model_dump(mode="json") for section in DEFAULT_CLASSES]
            return True

        return await self._write("seed_default_classes", apply)

    async def get_teachers(self) -> list[TeacherOut]:
        return await self._read(
            "get_teachers",
            lambda doc: sorted(
                (TeacherOut.model_validate(item) for item in doc["teachers"]), key=lambda teacher: teacher.name
            ),
        )

    async def save_teacher(self, teacher: TeacherIn) -> TeacherOut:
        def apply(doc: dict[str, Any]) -> TeacherOut:
            stored = TeacherOut(
                id=teacher.id or str(uuid.uuid4()),
                name=teacher.name,
                initials=teacher.initials,
                color=teacher.color,
                subject=teacher.subject,
            )
            payload = stored.model_dump(mode="json")
            for index, item in enumerate(doc["teachers"]):
                if item["id"] == stored.id:
                    doc["teachers"][index] = payload
                    break
            else:
                doc["teachers"].append(payload)
            return stored

        return await self._write("save_teacher", apply)

    async def delete_teacher(self, teacher_id: str) -> None:
        def apply(doc: dict[str, Any]) -> None:
            doc["teachers"] = [item for item in doc["teachers"] if item["id"] != teacher_id]
            for cells in doc["baseSchedule"].values():
                for key in [
                    key
                    for key, raw in cells.items()
                    if teacher_id in (raw.get("teacherId"), raw.get("splitTeacherId"))
                ]:
                    del cells[key]

        await self._write("delete_teacher", apply)

    # base schedule

    async def get_base_schedule(self, day_name: str) -> dict[str, ScheduleEntry]:
        return await self._read(
            "get_base_schedule",
            lambda doc: {
                key: ScheduleEntry.model_validate(raw) for key, raw in doc["baseSchedule"].get(day_name, {}).items()
            },
        )

    async def save_base_entry(
        self,
        day_name: str,
        class_id: str,
        period_index: int,
        entry: ScheduleEntry | None,
    ) -> None:
        key = slot_key(class_id, period_index)

        def apply(doc: dict[str, Any]) -> None:
            cells = doc["baseSchedule"].setdefault(day_name, {})
            if entry is None:
                cells.pop(key, None)
            else:
                cells[key] = _entry_to_dict(entry)

        await self._write("save_base_entry", apply)

    async def replace_base_day(self, day_name: str, entries: dict[str, ScheduleEntry]) -> None:
        def apply(doc: dict[str, Any]) -> None:
            doc["baseSchedule"][day_name] = {key: _entry_to_dict(entry) for key, entry in entries.items()}

        await self._write("replace_base_day", apply)

    # overrides

    async def get_overrides(self, date_str: str) -> dict[str, DailyOverridePayload]:
        return await self._read(
            "get_overrides",
            lambda doc: {key: override_from_dict(raw) for key, raw in doc["overrides"].get(date_str, {}).items()},
        )

    async def save_override(
        self,
        date_str: str,
        class_id: str,
        period_index: int,
        override: DailyOverridePayload | None,
    ) -> None:
        key = slot_key(class_id, period_index)

        def apply(doc: dict[str, Any]) -> None:
            cells = doc["overrides"].setdefault(date_str, {})
            if override is None:
                cells.pop(key, None)
            else:
                cells[key] = override_to_dict(override)

        await self._write("save_override", apply)

    # attendance

    async def get_attendance(self, date_str: str) -> dict[str, AttendanceStatus]:
        return await self._read(
            "get_attendance",
            lambda doc: {
                teacher_id: AttendanceStatus(status)
                for teacher_id, status in doc["attendance"].get(date_str, {}).items()
            },
        )

    async def mark_attendance(self, date_str: str, teacher_id: str, status: AttendanceStatus) -> None:
        def apply(doc: dict[str, Any]) -> None:
            marks = doc["attendance"].setdefault(date_str, {})
            if status == AttendanceStatus.present:
                marks.pop(teacher_id, None)
            else:
                marks[teacher_id] = status.value

        await self._write("mark_attendance", apply)

    # per-day records

    async def get_instruction(self, date_str: str) -> str:
        return await self._read("get_instruction", lambda doc: doc["instructions"].get(date_str, ""))

    async def save_instruction(self, date_str: str, text: str) -> None:
        def apply(doc: dict[str, Any]) -> None:
            doc["instructions"][date_str] = text

        await self._write("save_instruction", apply)

    async def add_notification(self, message: str, kind: NotificationKind, limit: int) -> NotificationOut:
        def apply(doc: dict[str, Any]) -> NotificationOut:
            notification = NotificationOut(
                id=str(uuid.uuid4()),
                message=message,
                kind=kind,
                is_read=False,
                created_at=datetime.now(timezone.utc),
            )
            doc["notifications"] = [notification.model_dump(mode="json"), *doc["notifications"]][:limit]
            return notification

        return await self._write("add_notification", apply)

    async def get_notifications(self) -> list[NotificationOut]:
        return await self._read(
            "get_notifications", lambda doc: [NotificationOut.model_validate(item) for item in doc["notifications"]]
        )

    async def mark_notifications_read(self) -> None:
        def apply(doc: dict[str, Any]) -> None:
            for item in doc["notifications"]:
                item["is_read"] = True

        await self._write("mark_notifications_read", apply)

    async def clear_notifications(self) -> None:
        def apply(doc: dict[str, Any]) -> None:
            doc["notifications"] = []

        await self._write("clear_notifications", apply)
