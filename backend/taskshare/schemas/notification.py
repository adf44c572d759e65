from datetime import datetime

from pydantic import BaseModel

from taskshare.models.notification import NotificationType


class NotificationOut(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    sender_name: str | None
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}
