from datetime import date

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from app.services.periods import parse_time_to_minutes, TIME_PATTERN

CAMEL_CONFIG = ConfigDict(populate_by_name=True)


class ExamGridCell(BaseModel):
    model_config = CAMEL_CONFIG

    exam_date: date = Field(alias="date")
    class_id: str = Field(alias="classId", min_length=1, max_length=36)
    subject: str = Field(default="", max_length=100)


class ExamGridSave(BaseModel):
    model_config = CAMEL_CONFIG

    exam_type: str = Field(alias="examType", min_length=1, max_length=100)
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    entries: list[ExamGridCell] = Field(min_length=1, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_window(self) -> "ExamGridSave":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("endTime must be after startTime")
        sundays = sorted({cell.exam_date.isoformat() for cell in self.entries if cell.exam_date.weekday() == 6})
        if sundays:
            raise ValueError(f"Exams cannot be scheduled on Sunday: {', '.join(sundays)}")
        return self


def _read_as(name: str, alias: str, **kwargs):
    # ORM rows carry the attribute name, responses use the camelCase alias.
    return Field(validation_alias=AliasChoices(alias, name), serialization_alias=alias, **kwargs)


class ExamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    exam_type: str = _read_as("exam_type", "examType")
    class_id: str = _read_as("class_id", "classId")
    subject: str
    invigilator_id: str | None = _read_as("invigilator_id", "invigilatorId", default=None)
    exam_date: date = _read_as("exam_date", "date")
    start_time: str = _read_as("start_time", "startTime")
    end_time: str = _read_as("end_time", "endTime")
