from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String

from subtracker.db import Base


def utc_now():
    return datetime.now(timezone.utc)


class Notification(Base):
    """A reminder for one upcoming renewal of a subscription.

    The subscription fields are a snapshot taken when the reminder was
    generated so the notification bell can render without a join.
    """

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(
        String(32), ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subscription_name = Column(String(100), nullable=False)
    subscription_amount = Column(Float, nullable=False)
    due_date = Column(String(10), nullable=False)  # ISO date of the subscription start
    billing = Column(String(20), nullable=False)
    renewal_date = Column(DateTime, nullable=False)
    send_at = Column(DateTime, nullable=False, index=True)  # renewal_date - notify_days_before
    notify_days_before = Column(Integer, nullable=False)

    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    dismissed = Column(Boolean, nullable=False, default=False)
    dismissed_at = Column(DateTime, nullable=True)
    email_sent = Column(Boolean, nullable=False, default=False)
    email_sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
