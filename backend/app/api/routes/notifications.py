from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_current_role, get_store
from app.models.user import UserRole
from app.schemas.notification import NotificationOut
from app.services.store import ScheduleStore

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationOut])
async def list_notifications(
    is_read: bool | None = Query(default=None),
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> list[NotificationOut]:
    notifications = await store.get_notifications()
    if is_read is not None:
        notifications = [item for item in notifications if item.is_read == is_read]
    return notifications


@router.post("/notifications/read-all", status_code=status.HTTP_204_NO_CONTENT)
async def mark_all_notifications_read(
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> None:
    await store.mark_notifications_read()


@router.delete("/notifications", status_code=status.HTTP_204_NO_CONTENT)
async def clear_notifications(
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> None:
    await store.clear_notifications()
