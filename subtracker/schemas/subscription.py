from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class BillingCycle(str, Enum):
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class SortField(str, Enum):
    DUE_DATE = "due_date"
    NAME = "name"
    PRICE = "price"
    CREATED_AT = "created_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class SubscriptionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., gt=0)
    billing: BillingCycle
    due_date: date
    category: Optional[str] = Field(None, max_length=50)
    icon: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("category", "icon", "description")
    @classmethod
    def strip_blank(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class SubscriptionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, gt=0)
    billing: Optional[BillingCycle] = None
    due_date: Optional[date] = None
    category: Optional[str] = Field(None, max_length=50)
    icon: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("category", "icon", "description")
    @classmethod
    def strip_blank(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class SubscriptionResponse(BaseModel):
    id: str
    user_id: int
    name: str
    price: float
    billing: str
    due_date: date
    category: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    # Derived from due_date and billing; None for non-recurring cadences
    renewal_date: Optional[date] = None
    days_until_renewal: Optional[int] = None

    class Config:
        from_attributes = True


class SubscriptionListResponse(BaseModel):
    items: list[SubscriptionResponse]
    total_count: int
    offset: int
    limit: int


# Upcoming renewals
class UpcomingSubscription(BaseModel):
    id: str
    name: str
    price: float
    billing: str
    renewal_date: date
    days_until_renewal: int
    reminder_sent: bool


class UpcomingSubscriptionListResponse(BaseModel):
    items: list[UpcomingSubscription]
    total_count: int


# Spending stats
class CategorySpend(BaseModel):
    """Monthly cost attributed to one category."""

    name: str  # "Uncategorized" when the subscription has no category
    monthly_cost: float


class MonthlyExpense(BaseModel):
    month: int  # 0 = January
    total: float


class SubscriptionStatsResponse(BaseModel):
    total_monthly: float
    total_yearly: float
    subscription_count: int
    categories: list[CategorySpend]
    monthly_expenses: list[MonthlyExpense]
    year: int
