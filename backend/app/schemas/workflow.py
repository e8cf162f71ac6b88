from datetime import date
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from app.models.attendance import AttendanceStatus
from app.schemas.teacher import TeacherOut
from app.schemas.timetable import DailyOverridePayload

CAMEL_CONFIG = ConfigDict(populate_by_name=True)


class WorkflowState(str, Enum):
    idle = "IDLE"
    leave_marked = "LEAVE_MARKED"
    periods_identified = "PERIODS_IDENTIFIED"
    actions_proposed = "ACTIONS_PROPOSED"
    action_applied = "ACTION_APPLIED"
    resolved = "RESOLVED"


class AssignAction(BaseModel):
    model_config = CAMEL_CONFIG

    kind: Literal["ASSIGN"] = "ASSIGN"
    class_id: str = Field(alias="classId", min_length=1, max_length=36)
    period_index: int = Field(alias="periodIndex")
    substitute_teacher_id: str = Field(alias="substituteTeacherId", min_length=1, max_length=36)
    note: str | None = Field(default=None, max_length=500)


class VacantAction(BaseModel):
    model_config = CAMEL_CONFIG

    kind: Literal["VACANT"] = "VACANT"
    class_id: str = Field(alias="classId", min_length=1, max_length=36)
    period_index: int = Field(alias="periodIndex")
    note: str | None = Field(default=None, max_length=500)


class MergeAction(BaseModel):
    model_config = CAMEL_CONFIG

    kind: Literal["MERGE"] = "MERGE"
    class_id: str = Field(alias="classId", min_length=1, max_length=36)
    period_index: int = Field(alias="periodIndex")
    target_class_id: str | None = Field(default=None, alias="targetClassId", max_length=36)


WorkflowAction = Annotated[
    Union[AssignAction, VacantAction, MergeAction],
    Field(discriminator="kind"),
]


class WorkflowActionsIn(BaseModel):
    actions: list[WorkflowAction] = Field(min_length=1, max_length=20)


class PendingPeriodOut(BaseModel):
    model_config = CAMEL_CONFIG

    class_id: str = Field(alias="classId")
    class_name: str = Field(alias="className")
    period_index: int = Field(alias="periodIndex")
    label: str
    subject: str | None = None
    is_split: bool = Field(default=False, alias="isSplit")
    candidates: list[TeacherOut] = Field(default_factory=list)


class ActionResultOut(BaseModel):
    model_config = CAMEL_CONFIG

    class_id: str = Field(alias="classId")
    period_index: int = Field(alias="periodIndex")
    kind: str
    ok: bool
    message: str
    override: DailyOverridePayload | None = None


class WorkflowOut(BaseModel):
    model_config = CAMEL_CONFIG

    teacher_id: str = Field(alias="teacherId")
    date_str: date = Field(alias="dateStr")
    day_name: str = Field(alias="dayName")
    leave_status: AttendanceStatus = Field(alias="leaveStatus")
    state: WorkflowState
    dismissed: bool = False
    pending: list[PendingPeriodOut] = Field(default_factory=list)
    applied: list[ActionResultOut] = Field(default_factory=list)


class WorkflowActionsOut(BaseModel):
    results: list[ActionResultOut]
    workflow: WorkflowOut
