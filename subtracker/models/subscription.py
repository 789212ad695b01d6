import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from subtracker.db import Base


def utc_now():
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    billing = Column(String(20), nullable=False)  # "Monthly" or "Yearly"
    due_date = Column(Date, nullable=False)  # Start date, anchors the billing cadence
    category = Column(String(50), nullable=True)
    icon = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="subscriptions")
