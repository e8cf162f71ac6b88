from datetime import date

from pydantic import BaseModel, Field


class MeetingIn(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=200)
    meeting_date: date
    note: str = Field(default="", max_length=5000)
    type: str | None = Field(default=None, max_length=50)


class MeetingOut(BaseModel):
    id: str
    name: str
    meeting_date: date
    note: str
    type: str | None = None

    model_config = {"from_attributes": True}
