"""Attendance-driven substitution workflow.

One workflow exists per ``(teacher, date)`` leave event. Starting it walks
``LEAVE_MARKED -> PERIODS_IDENTIFIED -> ACTIONS_PROPOSED``: the teacher's base
periods for the weekday are filtered by leave type and each gets a list of
free candidate substitutes. The operator then applies one action per period
(assign, vacant, merge). An assignment is checked again against the current
day before it is written. Each action writes one override on its own; a
failed write leaves only that period pending.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from app.core.exceptions import ScheduleValidationError, StoreUnavailableError
from app.models.attendance import AttendanceStatus
from app.schemas.class_section import ClassSectionOut
from app.schemas.teacher import TeacherOut
from app.schemas.timetable import MergedOverride, SubstitutionOverride, VacantOverride
from app.schemas.workflow import (
    ActionResultOut,
    AssignAction,
    MergeAction,
    PendingPeriodOut,
    VacantAction,
    WorkflowAction,
    WorkflowOut,
    WorkflowState,
)
from app.services.availability import AvailabilityChecker, DaySnapshot, find_busy_class, leave_status
from app.services.periods import DAYS, LUNCH_INDEX, WEEKDAY_NAMES, parse_slot_key, period_label
from app.services.store import ScheduleStore

logger = logging.getLogger(__name__)

LEAVE_STATUSES = {AttendanceStatus.absent, AttendanceStatus.half_day_before, AttendanceStatus.half_day_after}


class MergePolicy(str, Enum):
    first_other = "first_other"
    same_section = "same_section"


def choose_merge_target(
    policy: MergePolicy,
    classes: list[ClassSectionOut],
    vacated_class_id: str,
) -> str | None:
    others = [section for section in classes if section.id != vacated_class_id]
    if policy == MergePolicy.same_section:
        vacated = next((section for section in classes if section.id == vacated_class_id), None)
        if vacated is None:
            return None
        others = [section for section in others if section.section == vacated.section]
    return others[0].id if others else None


def period_applies(status: AttendanceStatus, period_index: int) -> bool:
    if status == AttendanceStatus.absent:
        return period_index != LUNCH_INDEX
    if status == AttendanceStatus.half_day_before:
        return period_index < LUNCH_INDEX
    if status == AttendanceStatus.half_day_after:
        return period_index > LUNCH_INDEX
    return False


@dataclass
class PendingPeriod:
    class_id: str
    class_name: str
    period_index: int
    subject: str | None
    is_split: bool = False
    co_teacher_id: str | None = None
    candidates: list[TeacherOut] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, int]:
        return self.class_id, self.period_index

    def to_out(self) -> PendingPeriodOut:
        return PendingPeriodOut(
            class_id=self.class_id,
            class_name=self.class_name,
            period_index=self.period_index,
            label=period_label(self.period_index),
            subject=self.subject,
            is_split=self.is_split,
            candidates=self.candidates,
        )


class SubstitutionWorkflow:
    def __init__(
        self,
        store: ScheduleStore,
        teacher_id: str,
        date_str: str,
        leave_status: AttendanceStatus,
        *,
        merge_policy: MergePolicy = MergePolicy.first_other,
        checker: AvailabilityChecker | None = None,
    ) -> None:
        if leave_status not in LEAVE_STATUSES:
            raise ScheduleValidationError(
                "A substitution workflow needs a leave mark",
                details={"teacherId": teacher_id, "status": leave_status.value},
            )
        self.store = store
        self.teacher_id = teacher_id
        self.date_str = date_str
        self.day_name = WEEKDAY_NAMES[date.fromisoformat(date_str).weekday()]
        self.leave_status = leave_status
        self.merge_policy = MergePolicy(merge_policy)
        self.checker = checker or AvailabilityChecker(store)
        self.state = WorkflowState.idle
        self.dismissed = False
        self.pending: dict[tuple[str, int], PendingPeriod] = {}
        self.applied: list[ActionResultOut] = []
        self._classes: list[ClassSectionOut] = []

    async def start(self) -> "SubstitutionWorkflow":
        self.state = WorkflowState.leave_marked
        await self.identify_periods()
        if self.pending:
            await self.propose_actions()
        return self

    async def identify_periods(self) -> list[PendingPeriod]:
        self.pending = {}
        if self.day_name not in DAYS:
            self.state = WorkflowState.resolved
            return []

        base, overrides, classes = await asyncio.gather(
            self.store.get_base_schedule(self.day_name),
            self.store.get_overrides(self.date_str),
            self.store.get_classes(),
        )
        self._classes = classes
        names = {section.id: section.name for section in classes}
        order = {section.id: index for index, section in enumerate(classes)}

        periods: list[PendingPeriod] = []
        for key, entry in base.items():
            class_id, period_index = parse_slot_key(key)
            if self.teacher_id not in entry.teacher_ids() or not period_applies(self.leave_status, period_index):
                continue
            # Already covered for this teacher by an earlier action on the same date.
            existing = overrides.get(key)
            if existing is not None and existing.original_teacher_id == self.teacher_id:
                continue
            is_split = entry.teacher_id != self.teacher_id
            periods.append(
                PendingPeriod(
                    class_id=class_id,
                    class_name=names.get(class_id, class_id),
                    period_index=period_index,
                    subject=entry.split_subject if is_split else entry.subject,
                    is_split=is_split,
                    co_teacher_id=entry.teacher_id if is_split else entry.split_teacher_id,
                )
            )
        periods.sort(key=lambda item: (item.period_index, order.get(item.class_id, len(order)), item.class_id))
        self.pending = {period.key: period for period in periods}
        self.state = WorkflowState.periods_identified if periods else WorkflowState.resolved
        logger.info(
            "Substitution workflow for %s on %s: %d period(s) to cover",
            self.teacher_id,
            self.date_str,
            len(periods),
        )
        return periods

    async def propose_actions(self) -> list[PendingPeriod]:
        snapshot = await self.checker.snapshot(self.date_str, self.day_name)
        for period in self.pending.values():
            period.candidates = self.checker.available_in(
                snapshot,
                period.period_index,
                exclude_class_ids=[period.class_id],
                exclude_teacher_ids=[self.teacher_id, period.co_teacher_id],
            )
        if self.state != WorkflowState.action_applied:
            self.state = WorkflowState.actions_proposed
        return list(self.pending.values())

    def _ensure_open(self) -> None:
        if self.state == WorkflowState.resolved:
            raise ScheduleValidationError(
                "This substitution workflow is already resolved",
                details={"teacherId": self.teacher_id, "dateStr": self.date_str},
            )

    def _pending_for(self, action: WorkflowAction) -> PendingPeriod:
        period = self.pending.get((action.class_id, action.period_index))
        if period is None:
            raise ScheduleValidationError(
                "Period is not pending in this workflow",
                details={"classId": action.class_id, "periodIndex": action.period_index},
            )
        return period

    def _check_substitute(self, action: AssignAction, period: PendingPeriod, snapshot: DaySnapshot) -> None:
        """Candidates were listed when the workflow started; re-check them against the current day."""
        substitute = action.substitute_teacher_id
        details = {"substituteTeacherId": substitute, "classId": action.class_id, "periodIndex": action.period_index}
        proposed = {teacher.id for teacher in period.candidates} - {self.teacher_id, period.co_teacher_id}
        if substitute not in proposed:
            raise ScheduleValidationError("Substitute is not free for this period", details=details)
        if leave_status(snapshot.attendance.get(substitute), period.period_index) is not None:
            raise ScheduleValidationError("Substitute is on leave for this period", details=details)
        busy_class = find_busy_class(snapshot.schedule, substitute, period.period_index, [period.class_id])
        if busy_class is not None:
            raise ScheduleValidationError(
                f"Substitute is already teaching {snapshot.class_name(busy_class)} at this period",
                details={**details, "busyClassId": busy_class},
            )

    def _build_override(self, action: WorkflowAction, period: PendingPeriod, snapshot: DaySnapshot):
        if isinstance(action, AssignAction):
            self._check_substitute(action, period, snapshot)
            return SubstitutionOverride(
                sub_teacher_id=action.substitute_teacher_id,
                sub_subject=period.subject,
                sub_note=action.note,
                original_teacher_id=self.teacher_id,
            )
        if isinstance(action, VacantAction):
            return VacantOverride(note=action.note, original_teacher_id=self.teacher_id)
        if isinstance(action, MergeAction):
            known = {section.id for section in self._classes}
            target = action.target_class_id or choose_merge_target(self.merge_policy, self._classes, action.class_id)
            if target is None or target == action.class_id or target not in known:
                raise ScheduleValidationError(
                    "No valid class to merge with",
                    details={"classId": action.class_id, "targetClassId": action.target_class_id},
                )
            return MergedOverride(merged_class_ids=[target], original_teacher_id=self.teacher_id)
        raise ScheduleValidationError(f"Unsupported workflow action: {type(action).__name__}")

    def _validate(self, action: WorkflowAction, snapshot: DaySnapshot):
        self._ensure_open()
        period = self._pending_for(action)
        return period, self._build_override(action, period, snapshot)

    async def _write(self, action: WorkflowAction, period: PendingPeriod, override) -> ActionResultOut:
        try:
            await self.store.save_override(self.date_str, period.class_id, period.period_index, override)
        except StoreUnavailableError as exc:
            logger.warning(
                "Workflow action %s failed for %s %s: %s",
                action.kind,
                period.class_id,
                period_label(period.period_index),
                exc.message,
            )
            return ActionResultOut(
                class_id=period.class_id,
                period_index=period.period_index,
                kind=action.kind,
                ok=False,
                message=f"Could not save {action.kind.lower()} for {period.class_name} "
                f"{period_label(period.period_index)}; try again",
            )

        self.pending.pop(period.key, None)
        result = ActionResultOut(
            class_id=period.class_id,
            period_index=period.period_index,
            kind=action.kind,
            ok=True,
            message=f"{period.class_name} {period_label(period.period_index)} covered",
            override=override,
        )
        self.applied.append(result)
        self.state = WorkflowState.action_applied if self.pending else WorkflowState.resolved
        return result

    async def apply(self, action: WorkflowAction) -> ActionResultOut:
        return (await self.apply_many([action]))[0]

    async def apply_many(self, actions: list[WorkflowAction]) -> list[ActionResultOut]:
        """Apply actions for several periods; all are validated before the first write."""
        self._ensure_open()
        snapshot = await self.checker.snapshot(self.date_str, self.day_name)
        seen: set[tuple[str, int]] = set()
        assigned: set[tuple[str, int]] = set()
        prepared = []
        for action in actions:
            key = (action.class_id, action.period_index)
            if key in seen:
                raise ScheduleValidationError(
                    "Only one action per period may be applied at a time",
                    details={"classId": action.class_id, "periodIndex": action.period_index},
                )
            seen.add(key)
            if isinstance(action, AssignAction):
                slot = (action.substitute_teacher_id, action.period_index)
                if slot in assigned:
                    raise ScheduleValidationError(
                        "A substitute can cover only one class per period",
                        details={"substituteTeacherId": action.substitute_teacher_id, "periodIndex": action.period_index},
                    )
                assigned.add(slot)
            prepared.append((action, *self._validate(action, snapshot)))
        return list(await asyncio.gather(*(self._write(action, period, override) for action, period, override in prepared)))

    def dismiss(self) -> None:
        self.dismissed = True
        self.state = WorkflowState.resolved

    def to_out(self) -> WorkflowOut:
        return WorkflowOut(
            teacher_id=self.teacher_id,
            date_str=self.date_str,
            day_name=self.day_name,
            leave_status=self.leave_status,
            state=self.state,
            dismissed=self.dismissed,
            pending=[period.to_out() for period in self.pending.values()],
            applied=list(self.applied),
        )


class WorkflowRegistry:
    """In-process workflows keyed by ``(teacher_id, date_str)``."""

    def __init__(self, merge_policy: MergePolicy = MergePolicy.first_other) -> None:
        self.merge_policy = MergePolicy(merge_policy)
        self._workflows: dict[tuple[str, str], SubstitutionWorkflow] = {}
        self._lock = asyncio.Lock()

    async def start(
        self,
        store: ScheduleStore,
        teacher_id: str,
        date_str: str,
        leave_status: AttendanceStatus,
    ) -> SubstitutionWorkflow:
        workflow = SubstitutionWorkflow(
            store,
            teacher_id,
            date_str,
            leave_status,
            merge_policy=self.merge_policy,
        )
        previous = self.get(teacher_id, date_str)
        if previous is not None:
            workflow.applied = list(previous.applied)
        await workflow.start()
        async with self._lock:
            self._workflows[(teacher_id, date_str)] = workflow
        return workflow

    async def handle_attendance(
        self,
        store: ScheduleStore,
        teacher_id: str,
        date_str: str,
        status: AttendanceStatus,
    ) -> SubstitutionWorkflow | None:
        if status in LEAVE_STATUSES:
            return await self.start(store, teacher_id, date_str, status)
        await self.dismiss(teacher_id, date_str)
        return None

    def get(self, teacher_id: str, date_str: str) -> SubstitutionWorkflow | None:
        return self._workflows.get((teacher_id, date_str))

    def for_date(self, date_str: str) -> list[SubstitutionWorkflow]:
        return [workflow for (_, day), workflow in self._workflows.items() if day == date_str]

    async def dismiss(self, teacher_id: str, date_str: str) -> SubstitutionWorkflow | None:
        async with self._lock:
            workflow = self._workflows.get((teacher_id, date_str))
            if workflow is not None:
                workflow.dismiss()
            return workflow
