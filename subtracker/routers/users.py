import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from subtracker.db import get_db
from subtracker.dependencies import get_current_user
from subtracker.models.user import User
from subtracker.schemas.user import (
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    UserProfileResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user_profile(
    current_user: User = Depends(get_current_user),
):
    """Get the current user's profile including reminder preferences."""
    return current_user


@router.patch("/me/notifications", response_model=NotificationPreferencesResponse)
async def update_notification_preferences(
    preferences: NotificationPreferencesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Update the email opt-in, the reminder window or the display name.

    A new reminder window applies from the next reminder run; notifications
    already generated are left as they are.
    """
    update_data = preferences.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        if value is None and field != "display_name":
            continue
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    logger.info(f"Updated reminder preferences for user {current_user.id}")

    return current_user
