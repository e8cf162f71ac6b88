import asyncio

import pytest

from app.core.exceptions import ScheduleValidationError, StoreUnavailableError
from app.models.attendance import AttendanceStatus
from app.schemas.class_section import ClassSectionOut
from app.schemas.workflow import AssignAction, MergeAction, VacantAction, WorkflowState
from app.services.availability import AvailabilityChecker, TeacherStatus, find_double_bookings
from app.services.local_store import LocalCacheStore
from app.services.resolver import ScheduleResolver
from app.services.substitution import (
    MergePolicy,
    SubstitutionWorkflow,
    WorkflowRegistry,
    choose_merge_target,
)

MONDAY = "2024-05-06"

CLASSES = [("6A", "6 A"), ("7A", "7 A"), ("11_SCI", "11 Science", "SENIOR_SECONDARY"), ("12_SCI", "12 Science", "SENIOR_SECONDARY")]
TEACHERS = [("T1", "Teacher One"), ("T2", "Teacher Two"), ("T3", "Teacher Three"), ("T4", "Teacher Four")]
BASE = {
    "Monday": {
        "6A_0": {"teacherId": "T1", "subject": "Math"},
        "6A_2": {"teacherId": "T1", "subject": "Math"},
        "7A_4": {"teacherId": "T1", "subject": "Math"},
        "7A_0": {"teacherId": "T2", "subject": "Science"},
        "11_SCI_2": {"teacherId": "T3", "subject": "Physics", "splitTeacherId": "T1", "splitSubject": "Chemistry"},
    }
}


@pytest.fixture()
def school(store, seed):
    return seed(store, classes=CLASSES, teachers=TEACHERS, base=BASE)


def start(store, status=AttendanceStatus.absent, **kwargs):
    return asyncio.run(SubstitutionWorkflow(store, "T1", MONDAY, status, **kwargs).start())


def test_absence_identifies_every_base_period(school):
    workflow = start(school)

    assert workflow.state == WorkflowState.actions_proposed
    assert list(workflow.pending) == [("6A", 0), ("6A", 2), ("11_SCI", 2), ("7A", 4)]
    split = workflow.pending[("11_SCI", 2)]
    assert split.is_split is True
    assert split.subject == "Chemistry"


def test_candidates_are_free_teachers_other_than_the_absent_one(school):
    workflow = start(school)

    period_zero = {teacher.id for teacher in workflow.pending[("6A", 0)].candidates}
    assert period_zero == {"T3", "T4"}
    # T3 teaches 11_SCI at period 2, so only T2 and T4 are free there.
    period_two = {teacher.id for teacher in workflow.pending[("6A", 2)].candidates}
    assert period_two == {"T2", "T4"}
    # T3 teaches the other half of the split slot, so it cannot also cover T1's half.
    split_slot = {teacher.id for teacher in workflow.pending[("11_SCI", 2)].candidates}
    assert split_slot == {"T2", "T4"}


def test_half_day_leave_filters_periods(school):
    morning = start(school, AttendanceStatus.half_day_before)
    afternoon = start(school, AttendanceStatus.half_day_after)

    assert list(morning.pending) == [("6A", 0), ("6A", 2), ("11_SCI", 2)]
    assert list(afternoon.pending) == [("7A", 4)]


def test_no_periods_resolves_immediately(store, seed):
    seed(store, classes=CLASSES, teachers=TEACHERS, base={"Monday": {"6A_4": {"teacherId": "T1", "subject": "Math"}}})

    workflow = start(store, AttendanceStatus.half_day_before)

    assert workflow.state == WorkflowState.resolved
    assert workflow.pending == {}


def test_assign_writes_substitution_and_resolves_slot(school):
    workflow = start(school)

    result = asyncio.run(
        workflow.apply(AssignAction(class_id="6A", period_index=0, substitute_teacher_id="T3", note="Cover"))
    )

    assert result.ok is True
    assert ("6A", 0) not in workflow.pending
    assert workflow.state == WorkflowState.action_applied
    entry = asyncio.run(ScheduleResolver(school).resolve(MONDAY, "Monday"))["6A_0"]
    assert entry.teacher_id == "T3"
    assert entry.subject == "Math"
    assert entry.note == "Cover"
    assert entry.original_teacher_id == "T1"


def test_assign_rejects_teacher_who_is_not_a_candidate(school):
    workflow = start(school)

    with pytest.raises(ScheduleValidationError):
        asyncio.run(workflow.apply(AssignAction(class_id="6A", period_index=0, substitute_teacher_id="T2")))

    assert asyncio.run(school.get_overrides(MONDAY)) == {}
    assert ("6A", 0) in workflow.pending


def test_action_for_non_pending_period_is_rejected_before_any_write(school):
    workflow = start(school)

    with pytest.raises(ScheduleValidationError):
        asyncio.run(
            workflow.apply_many(
                [
                    VacantAction(class_id="6A", period_index=0),
                    VacantAction(class_id="6A", period_index=1),
                ]
            )
        )

    assert asyncio.run(school.get_overrides(MONDAY)) == {}
    assert len(workflow.pending) == 4


def test_vacant_and_merge_actions(school):
    workflow = start(school)

    results = asyncio.run(
        workflow.apply_many(
            [
                VacantAction(class_id="6A", period_index=0, note="Library"),
                MergeAction(class_id="6A", period_index=2),
                MergeAction(class_id="7A", period_index=4, target_class_id="6A"),
            ]
        )
    )

    assert all(result.ok for result in results)
    resolved = asyncio.run(ScheduleResolver(school).resolve(MONDAY, "Monday"))
    assert resolved["6A_0"].note == "Library"
    assert resolved["6A_2"].merged_class_ids == ["7A"]
    assert resolved["7A_4"].merged_class_ids == ["6A"]
    assert list(workflow.pending) == [("11_SCI", 2)]


def test_merge_policy_same_section(school):
    workflow = start(school, merge_policy=MergePolicy.same_section)

    result = asyncio.run(workflow.apply(MergeAction(class_id="11_SCI", period_index=2)))

    assert result.ok is True
    assert result.override.merged_class_ids == ["12_SCI"]


def test_choose_merge_target_policies():
    classes = [
        ClassSectionOut(id="6A", name="6 A", section="SECONDARY"),
        ClassSectionOut(id="11_SCI", name="11 Science", section="SENIOR_SECONDARY"),
        ClassSectionOut(id="12_SCI", name="12 Science", section="SENIOR_SECONDARY"),
    ]

    assert choose_merge_target(MergePolicy.first_other, classes, "11_SCI") == "6A"
    assert choose_merge_target(MergePolicy.same_section, classes, "11_SCI") == "12_SCI"
    assert choose_merge_target(MergePolicy.same_section, classes, "6A") is None


class FlakyStore(LocalCacheStore):
    def __init__(self, *args, failing_class_id, **kwargs):
        super().__init__(*args, **kwargs)
        self.failing_class_id = failing_class_id

    async def save_override(self, date_str, class_id, period_index, override):
        if class_id == self.failing_class_id:
            raise StoreUnavailableError("write failed")
        await super().save_override(date_str, class_id, period_index, override)


def test_failed_write_leaves_only_that_period_pending(tmp_path, seed):
    flaky = seed(
        FlakyStore(tmp_path / "cache.json", failing_class_id="7A"),
        classes=CLASSES,
        teachers=TEACHERS,
        base=BASE,
    )
    workflow = start(flaky)

    results = asyncio.run(
        workflow.apply_many(
            [
                VacantAction(class_id="6A", period_index=0),
                VacantAction(class_id="7A", period_index=4),
            ]
        )
    )

    by_class = {result.class_id: result for result in results}
    assert by_class["6A"].ok is True
    assert by_class["7A"].ok is False
    assert "try again" in by_class["7A"].message
    assert ("7A", 4) in workflow.pending
    assert ("6A", 0) not in workflow.pending
    assert set(asyncio.run(flaky.get_overrides(MONDAY))) == {"6A_0"}

    # Retrying the single failed period once the store recovers.
    flaky.failing_class_id = None
    retry = asyncio.run(workflow.apply(VacantAction(class_id="7A", period_index=4)))
    assert retry.ok is True


def test_resolves_when_pending_empties_and_dismiss_ends_early(school):
    workflow = start(school, AttendanceStatus.half_day_after)
    asyncio.run(workflow.apply(VacantAction(class_id="7A", period_index=4)))
    assert workflow.state == WorkflowState.resolved

    with pytest.raises(ScheduleValidationError):
        asyncio.run(workflow.apply(VacantAction(class_id="7A", period_index=4)))

    other = start(school)
    other.dismiss()
    assert other.state == WorkflowState.resolved
    assert other.dismissed is True
    assert len(other.pending) == 4


def test_registry_starts_and_dismisses_from_attendance(school):
    registry = WorkflowRegistry()

    async def run():
        started = await registry.handle_attendance(school, "T1", MONDAY, AttendanceStatus.absent)
        state_on_start = started.state
        listed = registry.for_date(MONDAY)
        cleared = await registry.handle_attendance(school, "T1", MONDAY, AttendanceStatus.present)
        return started, state_on_start, listed, cleared

    started, state_on_start, listed, cleared = asyncio.run(run())

    assert state_on_start == WorkflowState.actions_proposed
    assert listed == [started]
    assert cleared is None
    assert registry.get("T1", MONDAY) is started
    assert started.state == WorkflowState.resolved
    assert started.dismissed is True


def test_workflow_requires_a_leave_mark(school):
    with pytest.raises(ScheduleValidationError):
        SubstitutionWorkflow(school, "T1", MONDAY, AttendanceStatus.present)


def test_substitute_taken_by_another_workflow_is_rejected(school):
    asyncio.run(school.mark_attendance(MONDAY, "T1", AttendanceStatus.absent))
    asyncio.run(school.mark_attendance(MONDAY, "T2", AttendanceStatus.absent))
    first = start(school)
    second = asyncio.run(SubstitutionWorkflow(school, "T2", MONDAY, AttendanceStatus.absent).start())
    # Both workflows were started before either assignment, so both list T3 at period 0.
    assert "T3" in {teacher.id for teacher in second.pending[("7A", 0)].candidates}

    asyncio.run(first.apply(AssignAction(class_id="6A", period_index=0, substitute_teacher_id="T3")))
    with pytest.raises(ScheduleValidationError) as excinfo:
        asyncio.run(second.apply(AssignAction(class_id="7A", period_index=0, substitute_teacher_id="T3")))

    assert excinfo.value.details["busyClassId"] == "6A"
    assert ("7A", 0) in second.pending
    resolved = asyncio.run(ScheduleResolver(school).resolve(MONDAY, "Monday"))
    assert [item for item in find_double_bookings(resolved) if item.teacher_id == "T3"] == []


def test_substitute_marked_on_leave_after_start_is_rejected(school):
    workflow = start(school)
    asyncio.run(school.mark_attendance(MONDAY, "T3", AttendanceStatus.half_day_before))

    with pytest.raises(ScheduleValidationError) as excinfo:
        asyncio.run(workflow.apply(AssignAction(class_id="6A", period_index=0, substitute_teacher_id="T3")))

    assert excinfo.value.message == "Substitute is on leave for this period"
    assert asyncio.run(school.get_overrides(MONDAY)) == {}


def test_one_substitute_cannot_cover_two_classes_in_one_batch(store, seed):
    seed(
        store,
        classes=CLASSES,
        teachers=TEACHERS,
        base={"Monday": {"6A_0": {"teacherId": "T1", "subject": "Math"}, "7A_0": {"teacherId": "T1", "subject": "Math"}}},
    )
    workflow = start(store)

    with pytest.raises(ScheduleValidationError):
        asyncio.run(
            workflow.apply_many(
                [
                    AssignAction(class_id="6A", period_index=0, substitute_teacher_id="T4"),
                    AssignAction(class_id="7A", period_index=0, substitute_teacher_id="T4"),
                ]
            )
        )

    assert asyncio.run(store.get_overrides(MONDAY)) == {}


def test_split_slot_action_keeps_the_present_co_teacher(school):
    workflow = start(school)

    asyncio.run(workflow.apply(VacantAction(class_id="11_SCI", period_index=2)))

    resolved = asyncio.run(ScheduleResolver(school).resolve(MONDAY, "Monday"))
    entry = resolved["11_SCI_2"]
    assert entry.teacher_id == "T3"
    assert entry.subject == "Physics"
    assert entry.split_teacher_id is None
    checker = AvailabilityChecker(school)
    assert asyncio.run(checker.status("T3", MONDAY, "Monday", 2)).status == TeacherStatus.busy
    assert "T3" not in {teacher.id for teacher in asyncio.run(checker.available_teachers(MONDAY, "Monday", 2))}


def test_remarking_absent_keeps_covered_periods_out_of_pending(school):
    registry = WorkflowRegistry()

    async def run():
        first = await registry.handle_attendance(school, "T1", MONDAY, AttendanceStatus.absent)
        await first.apply(AssignAction(class_id="6A", period_index=0, substitute_teacher_id="T3"))
        return await registry.handle_attendance(school, "T1", MONDAY, AttendanceStatus.absent)

    again = asyncio.run(run())

    assert ("6A", 0) not in again.pending
    assert list(again.pending) == [("6A", 2), ("11_SCI", 2), ("7A", 4)]
    assert [(result.class_id, result.period_index) for result in again.applied] == [("6A", 0)]
    with pytest.raises(ScheduleValidationError):
        asyncio.run(again.apply(AssignAction(class_id="6A", period_index=0, substitute_teacher_id="T4")))
    assert asyncio.run(school.get_overrides(MONDAY))["6A_0"].sub_teacher_id == "T3"
