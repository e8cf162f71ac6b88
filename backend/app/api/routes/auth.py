import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_current_role
from app.core.security import create_access_token, verify_role_password
from app.models.user import UserRole
from app.schemas.user import CurrentRoleOut, RoleLogin, Token

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=Token)
def login(payload: RoleLogin) -> Token:
    if not verify_role_password(payload.role, payload.password):
        logger.warning("Rejected login attempt for role %s", payload.role.value)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")
    logger.info("Role %s signed in", payload.role.value)
    return Token(access_token=create_access_token(payload.role), role=payload.role)


@router.get("/me", response_model=CurrentRoleOut)
def me(current_role: UserRole = Depends(get_current_role)) -> CurrentRoleOut:
    return CurrentRoleOut(role=current_role, can_edit_base_schedule=current_role == UserRole.principal)
