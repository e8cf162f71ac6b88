"""Effective schedule resolution.

The effective schedule of a date is the recurring base plan of its weekday
with that date's overrides laid over it. An override owns its slot: it is
tagged ``isOverride`` and only borrows from the base entry the fields it does
not set itself.
"""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from app.core.exceptions import ScheduleFetchError, StoreUnavailableError
from app.models.timetable import OverrideType
from app.schemas.timetable import (
    DailyOverridePayload,
    EffectiveScheduleEntry,
    MergedOverride,
    ScheduleEntry,
    SubstitutionOverride,
    VacantOverride,
)
from app.services.store import ScheduleStore

logger = logging.getLogger(__name__)

DEFAULT_VACANT_NOTE = "Vacant"


def base_to_effective(entry: ScheduleEntry) -> EffectiveScheduleEntry:
    return EffectiveScheduleEntry(
        teacher_id=entry.teacher_id,
        subject=entry.subject,
        note=entry.note,
        split_teacher_id=entry.split_teacher_id,
        split_subject=entry.split_subject,
        is_override=False,
    )


def override_to_effective(
    override: DailyOverridePayload,
    base: ScheduleEntry | None,
) -> EffectiveScheduleEntry:
    """Map an override onto the schedule-entry shape, borrowing unset fields from ``base``.

    On a split slot whose ``originalTeacherId`` names one of the two teachers,
    the override replaces only that teacher's half and the other half stays.
    """
    entry = _whole_slot(override, base)
    if base is None or not base.split_teacher_id or not override.original_teacher_id:
        return entry
    if override.original_teacher_id == base.split_teacher_id:
        sub_subject = override.sub_subject if isinstance(override, SubstitutionOverride) else None
        return entry.model_copy(
            update={
                "teacher_id": base.teacher_id,
                "subject": base.subject,
                "split_teacher_id": entry.teacher_id,
                "split_subject": sub_subject or base.split_subject,
            }
        )
    if override.original_teacher_id == base.teacher_id:
        return entry.model_copy(
            update={"split_teacher_id": base.split_teacher_id, "split_subject": base.split_subject}
        )
    return entry


def _whole_slot(override: DailyOverridePayload, base: ScheduleEntry | None) -> EffectiveScheduleEntry:
    base_subject = base.subject if base else None
    original_teacher_id = override.original_teacher_id or (base.teacher_id if base else None)

    if isinstance(override, SubstitutionOverride):
        return EffectiveScheduleEntry(
            teacher_id=override.sub_teacher_id,
            subject=override.sub_subject or base_subject,
            note=override.sub_note,
            is_override=True,
            override_type=OverrideType.substitution,
            original_teacher_id=original_teacher_id,
        )
    if isinstance(override, VacantOverride):
        return EffectiveScheduleEntry(
            teacher_id=None,
            subject=base_subject,
            note=override.note or DEFAULT_VACANT_NOTE,
            is_override=True,
            override_type=OverrideType.vacant,
            original_teacher_id=original_teacher_id,
        )
    if isinstance(override, MergedOverride):
        return EffectiveScheduleEntry(
            teacher_id=None,
            subject=base_subject,
            note=f"Merged with {', '.join(override.merged_class_ids)}",
            is_override=True,
            override_type=OverrideType.merged,
            original_teacher_id=original_teacher_id,
            merged_class_ids=list(override.merged_class_ids),
        )
    raise TypeError(f"Unsupported override variant: {type(override).__name__}")


def merge_schedule(
    base: dict[str, ScheduleEntry],
    overrides: dict[str, DailyOverridePayload],
) -> dict[str, EffectiveScheduleEntry]:
    result = {key: base_to_effective(entry) for key, entry in base.items()}
    for key, override in overrides.items():
        result[key] = override_to_effective(override, base.get(key))
    return result


class ScheduleResolver:
    def __init__(self, store: ScheduleStore) -> None:
        self.store = store

    async def _fetch(self, source: str, date_str: str, day_name: str, coro):
        try:
            return await coro
        except StoreUnavailableError as exc:
            logger.warning("Schedule %s fetch failed for %s (%s): %s", source, date_str, day_name, exc.message)
            raise ScheduleFetchError(source, date_str, day_name) from exc
        except (ValidationError, KeyError) as exc:
            # A stored row that no longer parses makes the source unreadable.
            logger.warning("Schedule %s for %s (%s) could not be parsed: %s", source, date_str, day_name, exc)
            raise ScheduleFetchError(source, date_str, day_name) from exc

    async def resolve(self, date_str: str, day_name: str) -> dict[str, EffectiveScheduleEntry]:
        # Either source failing fails the whole view; a base-only answer would hide substitutions.
        base, overrides = await asyncio.gather(
            self._fetch("base schedule", date_str, day_name, self.store.get_base_schedule(day_name)),
            self._fetch("overrides", date_str, day_name, self.store.get_overrides(date_str)),
        )
        return merge_schedule(base, overrides)
