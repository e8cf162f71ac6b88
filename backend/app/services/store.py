"""Schedule store interface and backend selection.

Every record family the timetable core needs (class and teacher registries,
base schedule, daily overrides, attendance marks) plus the small per-day
records kept alongside them (daily instruction, notifications) is reached
through :class:`ScheduleStore`. Implementations are async, carry a timeout on
every call, and raise :class:`~app.core.exceptions.StoreUnavailableError`
instead of hanging or crashing.

Concurrent writes to the same key are last-write-wins; there is no locking
and no cross-key transaction.
"""

from __future__ import annotations

import abc
import logging
from pathlib import Path

from app.core.config import Settings
from app.models.attendance import AttendanceStatus
from app.models.notification import NotificationKind
from app.schemas.class_section import ClassSectionIn, ClassSectionOut
from app.schemas.notification import NotificationOut
from app.schemas.teacher import TeacherIn, TeacherOut
from app.schemas.timetable import DailyOverridePayload, ScheduleEntry

logger = logging.getLogger(__name__)

DEFAULT_CLASSES: list[ClassSectionIn] = [
    ClassSectionIn(id="6", name="6", section="SECONDARY"),
    ClassSectionIn(id="7", name="7", section="SECONDARY"),
    ClassSectionIn(id="8", name="8", section="SECONDARY"),
    ClassSectionIn(id="9", name="9", section="SECONDARY"),
    ClassSectionIn(id="10", name="10", section="SECONDARY"),
    ClassSectionIn(id="11_SCI", name="11 Science", section="SENIOR_SECONDARY"),
    ClassSectionIn(id="11_COM", name="11 Commerce", section="SENIOR_SECONDARY"),
    ClassSectionIn(id="12_SCI", name="12 Science", section="SENIOR_SECONDARY"),
    ClassSectionIn(id="12_COM", name="12 Commerce", section="SENIOR_SECONDARY"),
]


class ScheduleStore(abc.ABC):
    backend_name: str = "abstract"

    # registries

    @abc.abstractmethod
    async def get_classes(self) -> list[ClassSectionOut]:
        """Classes in registry order."""

    @abc.abstractmethod
    async def save_class(self, section: ClassSectionIn) -> ClassSectionOut:
        """Insert or update a class, keeping its registry position on update."""

    @abc.abstractmethod
    async def delete_class(self, class_id: str) -> None:
        """Remove a class with every base entry and override keyed by it."""

    @abc.abstractmethod
    async def seed_default_classes(self) -> bool:
        """Populate the default registry when it is empty."""

    @abc.abstractmethod
    async def get_teachers(self) -> list[TeacherOut]: ...

    @abc.abstractmethod
    async def save_teacher(self, teacher: TeacherIn) -> TeacherOut: ...

    @abc.abstractmethod
    async def delete_teacher(self, teacher_id: str) -> None:
        """Remove a teacher and the base entries naming them as primary or split teacher."""

    # base schedule

    @abc.abstractmethod
    async def get_base_schedule(self, day_name: str) -> dict[str, ScheduleEntry]: ...

    @abc.abstractmethod
    async def save_base_entry(
        self,
        day_name: str,
        class_id: str,
        period_index: int,
        entry: ScheduleEntry | None,
    ) -> None:
        """Upsert one base cell; ``None`` deletes it (no-op when absent)."""

    @abc.abstractmethod
    async def replace_base_day(self, day_name: str, entries: dict[str, ScheduleEntry]) -> None:
        """Replace the whole base plan of one weekday."""

    # overrides

    @abc.abstractmethod
    async def get_overrides(self, date_str: str) -> dict[str, DailyOverridePayload]: ...

    @abc.abstractmethod
    async def save_override(
        self,
        date_str: str,
        class_id: str,
        period_index: int,
        override: DailyOverridePayload | None,
    ) -> None:
        """Upsert one override; ``None`` deletes it (no-op when absent)."""

    # attendance

    @abc.abstractmethod
    async def get_attendance(self, date_str: str) -> dict[str, AttendanceStatus]: ...

    @abc.abstractmethod
    async def mark_attendance(self, date_str: str, teacher_id: str, status: AttendanceStatus) -> None:
        """Persist a non-present mark; ``present`` deletes any stored mark."""

    # per-day records

    @abc.abstractmethod
    async def get_instruction(self, date_str: str) -> str: ...

    @abc.abstractmethod
    async def save_instruction(self, date_str: str, text: str) -> None: ...

    @abc.abstractmethod
    async def add_notification(self, message: str, kind: NotificationKind, limit: int) -> NotificationOut:
        """Record a notification, dropping the oldest beyond ``limit``."""

    @abc.abstractmethod
    async def get_notifications(self) -> list[NotificationOut]:
        """Newest first."""

    @abc.abstractmethod
    async def mark_notifications_read(self) -> None: ...

    @abc.abstractmethod
    async def clear_notifications(self) -> None: ...

    async def ping(self) -> None:
        await self.get_classes()

    async def close(self) -> None:
        return None


async def build_store(settings: Settings) -> ScheduleStore:
    """Pick the store backend from configuration.

    With ``offline_fallback`` enabled an unreachable database switches the
    service to the local cache instead of failing startup.
    """
    from app.services.local_store import LocalCacheStore

    local_path = Path(settings.local_cache_path)
    if settings.store_backend == "local":
        logger.info("Using local cache store at %s", local_path)
        return LocalCacheStore(local_path, timeout_seconds=settings.store_timeout_seconds)

    try:
        from app.db.bootstrap import ensure_runtime_schema_compatibility
        from app.db.session import SessionLocal, engine
        from app.services.sql_store import SqlScheduleStore

        ensure_runtime_schema_compatibility(engine)
        store = SqlScheduleStore(SessionLocal, timeout_seconds=settings.store_timeout_seconds)
        await store.ping()
        logger.info("Using database store")
        return store
    except Exception:
        if not settings.offline_fallback:
            raise
        logger.warning(
            "Database store unavailable, running in offline mode on the local cache at %s",
            local_path,
            exc_info=True,
        )
        return LocalCacheStore(local_path, timeout_seconds=settings.store_timeout_seconds)
