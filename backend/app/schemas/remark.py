from datetime import date

from pydantic import BaseModel, Field

from app.models.remark import RemarkType


class RemarkCreate(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=36)
    remark_date: date
    note: str = Field(min_length=1, max_length=2000)
    type: RemarkType = RemarkType.general


class RemarkOut(RemarkCreate):
    id: str

    model_config = {"from_attributes": True}
