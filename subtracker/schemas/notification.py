from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: int
    subscription_id: str
    subscription_name: str
    subscription_amount: float
    due_date: str
    billing: str
    renewal_date: datetime
    send_at: datetime
    notify_days_before: int
    read: bool
    read_at: Optional[datetime] = None
    dismissed: bool
    email_sent: bool
    email_sent_at: Optional[datetime] = None
    created_at: datetime
    days_until_renewal: Optional[int] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    unread_count: int


class ReminderRunStats(BaseModel):
    """Counters collected by one batch reminder scan."""

    users_checked: int = 0
    subscriptions_checked: int = 0
    notifications_created: int = 0
    emails_sent: int = 0
    errors: int = 0
