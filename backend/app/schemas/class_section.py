from pydantic import BaseModel, Field

from app.models.class_section import SectionTag


class ClassSectionIn(BaseModel):
    id: str = Field(min_length=1, max_length=36, pattern=r"^[A-Za-z0-9_-]+$")
    name: str = Field(min_length=1, max_length=100)
    section: SectionTag = SectionTag.secondary


class ClassSectionOut(ClassSectionIn):
    model_config = {"from_attributes": True}
