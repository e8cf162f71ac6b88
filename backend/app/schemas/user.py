from pydantic import BaseModel, Field

from app.models.user import UserRole


class RoleLogin(BaseModel):
    role: UserRole
    password: str = Field(min_length=1, max_length=128)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: UserRole


class CurrentRoleOut(BaseModel):
    role: UserRole
    can_edit_base_schedule: bool
