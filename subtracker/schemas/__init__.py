from subtracker.schemas.notification import (
    NotificationListResponse,
    NotificationResponse,
    ReminderRunStats,
)
from subtracker.schemas.subscription import (
    BillingCycle,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
)
from subtracker.schemas.user import AuthResponse, LoginRequest, UserCreate, UserResponse

__all__ = [
    "UserCreate",
    "UserResponse",
    "AuthResponse",
    "LoginRequest",
    "BillingCycle",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "SubscriptionUpdate",
    "NotificationResponse",
    "NotificationListResponse",
    "ReminderRunStats",
]
