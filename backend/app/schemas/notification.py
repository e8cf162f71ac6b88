from datetime import datetime

from pydantic import BaseModel

from app.models.notification import NotificationKind


class NotificationOut(BaseModel):
    id: str
    message: str
    kind: NotificationKind
    is_read: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}
