from pydantic import BaseModel, Field, model_validator

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


def initials_for(name: str) -> str:
    parts = [part for part in name.replace(".", " ").split() if part]
    return "".join(part[0] for part in parts[:3]).upper() or "?"


class TeacherIn(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=200)
    initials: str | None = Field(default=None, min_length=1, max_length=10)
    color: str = Field(default="#3b82f6", pattern=HEX_COLOR_PATTERN)
    subject: str | None = Field(default=None, max_length=100)

    @model_validator(mode="after")
    def default_initials(self) -> "TeacherIn":
        self.name = self.name.strip()
        if not self.initials:
            self.initials = initials_for(self.name)
        return self


class TeacherOut(BaseModel):
    id: str
    name: str
    initials: str
    color: str
    subject: str | None = None

    model_config = {"from_attributes": True}


class TeacherPeriodOut(BaseModel):
    class_id: str = Field(alias="classId")
    class_name: str = Field(alias="className")
    period_index: int = Field(alias="periodIndex")
    label: str
    subject: str | None = None
    is_split: bool = Field(default=False, alias="isSplit")

    model_config = {"populate_by_name": True}
