from collections.abc import Callable, Generator, Iterable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import StoreUnavailableError
from app.core.security import decode_token
from app.models.user import UserRole
from app.services.store import ScheduleStore
from app.services.substitution import WorkflowRegistry

security = HTTPBearer()


def get_store(request: Request) -> ScheduleStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreUnavailableError("Schedule store is not ready")
    return store


def get_workflow_registry(request: Request) -> WorkflowRegistry:
    return request.app.state.workflows


def get_db(store: ScheduleStore = Depends(get_store)) -> Generator[Session, None, None]:
    session_factory = getattr(store, "session_factory", None)
    if session_factory is None:
        raise StoreUnavailableError(
            "Records are only available while the database is reachable",
            details={"backend": store.backend_name},
        )
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def get_current_role(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> UserRole:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(credentials.credentials)
        role = payload.get("sub")
        if role is None:
            raise credentials_exception
        return UserRole(role)
    except (JWTError, ValueError) as exc:
        raise credentials_exception from exc


def require_roles(*roles: UserRole) -> Callable[[UserRole], UserRole]:
    allowed_roles: Iterable[UserRole] = set(roles)

    def role_checker(current_role: UserRole = Depends(get_current_role)) -> UserRole:
        if current_role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_role

    return role_checker


require_principal = require_roles(UserRole.principal)


def get_app_settings() -> Settings:
    return get_settings()
