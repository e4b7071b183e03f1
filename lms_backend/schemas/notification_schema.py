from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from lms_backend.models.enums import NotificationType

class NotificationDisplay(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    is_read: bool
    course_id: Optional[str] = None
    chapter_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class NotificationList(BaseModel):
    notifications: List[NotificationDisplay]
    unread_count: int

class NotificationMarkRequest(BaseModel):
    mark_all_as_read: bool = False
    notification_id: Optional[str] = None
