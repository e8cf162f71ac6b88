from __future__ import annotations

from datetime import date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from app.models.attendance import AttendanceStatus
from app.models.timetable import OverrideType
from app.services.periods import DayName

CAMEL_CONFIG = ConfigDict(populate_by_name=True)


class ScheduleEntry(BaseModel):
    """One cell of the recurring weekly plan."""

    model_config = CAMEL_CONFIG

    teacher_id: str = Field(alias="teacherId", min_length=1, max_length=36)
    subject: str = Field(min_length=1, max_length=100)
    note: str | None = Field(default=None, max_length=500)
    split_teacher_id: str | None = Field(default=None, alias="splitTeacherId", max_length=36)
    split_subject: str | None = Field(default=None, alias="splitSubject", max_length=100)

    @model_validator(mode="after")
    def validate_split(self) -> "ScheduleEntry":
        if self.split_teacher_id is None:
            self.split_subject = None
            return self
        if self.split_teacher_id == self.teacher_id:
            raise ValueError("splitTeacherId must differ from teacherId")
        return self

    def teacher_ids(self) -> set[str]:
        ids = {self.teacher_id}
        if self.split_teacher_id:
            ids.add(self.split_teacher_id)
        return ids


class SubstitutionOverride(BaseModel):
    model_config = CAMEL_CONFIG

    type: Literal["SUBSTITUTION"] = "SUBSTITUTION"
    sub_teacher_id: str = Field(alias="subTeacherId", min_length=1, max_length=36)
    sub_subject: str | None = Field(default=None, alias="subSubject", max_length=100)
    sub_note: str | None = Field(default=None, alias="subNote", max_length=500)
    original_teacher_id: str | None = Field(default=None, alias="originalTeacherId", max_length=36)


class VacantOverride(BaseModel):
    model_config = CAMEL_CONFIG

    type: Literal["VACANT"] = "VACANT"
    note: str | None = Field(default=None, max_length=500)
    original_teacher_id: str | None = Field(default=None, alias="originalTeacherId", max_length=36)


class MergedOverride(BaseModel):
    model_config = CAMEL_CONFIG

    type: Literal["MERGED"] = "MERGED"
    merged_class_ids: list[str] = Field(alias="mergedClassIds", min_length=1, max_length=10)
    original_teacher_id: str | None = Field(default=None, alias="originalTeacherId", max_length=36)

    @field_validator("merged_class_ids")
    @classmethod
    def dedupe_class_ids(cls, value: list[str]) -> list[str]:
        cleaned = list(dict.fromkeys(item.strip() for item in value if item.strip()))
        if not cleaned:
            raise ValueError("mergedClassIds must name at least one class")
        return cleaned


DailyOverridePayload = Annotated[
    Union[SubstitutionOverride, VacantOverride, MergedOverride],
    Field(discriminator="type"),
]
override_adapter: TypeAdapter[DailyOverridePayload] = TypeAdapter(DailyOverridePayload)


def override_to_dict(override: SubstitutionOverride | VacantOverride | MergedOverride) -> dict:
    return override.model_dump(by_alias=True, exclude_none=True)


def override_from_dict(raw: dict) -> SubstitutionOverride | VacantOverride | MergedOverride:
    return override_adapter.validate_python(raw)


class EffectiveScheduleEntry(BaseModel):
    model_config = CAMEL_CONFIG

    teacher_id: str | None = Field(default=None, alias="teacherId")
    subject: str | None = None
    note: str | None = None
    split_teacher_id: str | None = Field(default=None, alias="splitTeacherId")
    split_subject: str | None = Field(default=None, alias="splitSubject")
    is_override: bool = Field(default=False, alias="isOverride")
    override_type: OverrideType | None = Field(default=None, alias="overrideType")
    original_teacher_id: str | None = Field(default=None, alias="originalTeacherId")
    merged_class_ids: list[str] | None = Field(default=None, alias="mergedClassIds")

    def references(self, teacher_id: str) -> bool:
        return teacher_id in (self.teacher_id, self.split_teacher_id)


class EffectiveTimetableOut(BaseModel):
    model_config = CAMEL_CONFIG

    date_str: date = Field(alias="dateStr")
    day_name: str = Field(alias="dayName")
    schedule: dict[str, EffectiveScheduleEntry]
    attendance: dict[str, AttendanceStatus]
    instruction: str = ""


class SaveBasePayload(BaseModel):
    model_config = CAMEL_CONFIG

    day_name: DayName = Field(alias="dayName")
    class_id: str = Field(alias="classId", min_length=1, max_length=36)
    period_index: int = Field(alias="periodIndex")
    entry: ScheduleEntry | None = None
    apply_to_rest_of_week: bool = Field(default=False, alias="applyToRestOfWeek")


class SaveOverridePayload(BaseModel):
    model_config = CAMEL_CONFIG

    date_str: date = Field(alias="dateStr")
    class_id: str = Field(alias="classId", min_length=1, max_length=36)
    period_index: int = Field(alias="periodIndex")
    override: DailyOverridePayload | None = None


class SaveAttendancePayload(BaseModel):
    model_config = CAMEL_CONFIG

    date_str: date = Field(alias="dateStr")
    teacher_id: str = Field(alias="teacherId", min_length=1, max_length=36)
    status: AttendanceStatus


class SaveInstructionPayload(BaseModel):
    model_config = CAMEL_CONFIG

    date_str: date = Field(alias="dateStr")
    text: str = Field(default="", max_length=2000)


class SaveBaseMutation(BaseModel):
    type: Literal["SAVE_BASE"]
    payload: SaveBasePayload


class SaveOverrideMutation(BaseModel):
    type: Literal["SAVE_OVERRIDE"]
    payload: SaveOverridePayload


class SaveAttendanceMutation(BaseModel):
    type: Literal["SAVE_ATTENDANCE"]
    payload: SaveAttendancePayload


class SaveInstructionMutation(BaseModel):
    type: Literal["SAVE_INSTRUCTION"]
    payload: SaveInstructionPayload


TimetableMutation = Union[
    SaveBaseMutation,
    SaveOverrideMutation,
    SaveAttendanceMutation,
    SaveInstructionMutation,
]


class CloneDayRequest(BaseModel):
    model_config = CAMEL_CONFIG

    source_day: DayName = Field(alias="sourceDay")


class TeacherStatusOut(BaseModel):
    model_config = CAMEL_CONFIG

    teacher_id: str = Field(alias="teacherId")
    status: str
    class_name: str | None = Field(default=None, alias="className")


class DoubleBookingOut(BaseModel):
    model_config = CAMEL_CONFIG

    teacher_id: str = Field(alias="teacherId")
    period_index: int = Field(alias="periodIndex")
    class_ids: list[str] = Field(alias="classIds")


class ProposedBaseEntry(BaseModel):
    model_config = CAMEL_CONFIG

    day_name: DayName = Field(alias="dayName")
    class_id: str = Field(alias="classId")
    period_index: int = Field(alias="periodIndex")
    entry: ScheduleEntry
