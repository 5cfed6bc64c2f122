"""
Notification Schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from sendit.app.models.notification import NotificationChannel, NotificationStatus


class NotificationResponse(BaseModel):
    id: int
    parcel_id: Optional[int]
    channel: NotificationChannel
    status: NotificationStatus
    subject: str
    message: str
    recipient: Optional[str]
    is_read: bool
    queued_at: datetime
    sent_at: Optional[datetime]
    read_at: Optional[datetime]

    class Config:
        from_attributes = True
