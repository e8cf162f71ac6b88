from __future__ import annotations

from datetime import datetime, timedelta, timezone
import hmac

from jose import jwt

from app.core.config import Settings, get_settings
from app.models.user import UserRole


def role_password(role: UserRole, settings: Settings) -> str:
    if role == UserRole.principal:
        return settings.principal_password
    return settings.management_password


def verify_role_password(role: UserRole, password: str, settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    expected = role_password(role, settings)
    return hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))


def create_access_token(role: UserRole, expires_minutes: int | None = None) -> str:
    settings = get_settings()
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {"sub": role.value, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
