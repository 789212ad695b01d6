from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from subtracker.db import get_db
from subtracker.dependencies import get_current_user, get_owned_notification
from subtracker.models.notification import Notification
from subtracker.models.user import User
from subtracker.schemas.notification import NotificationListResponse, NotificationResponse
from subtracker.services import renewal
from subtracker.services.notifications import (
    dismiss_notification,
    list_due_notifications,
    mark_notification_read,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _to_response(notification: Notification, days_until_renewal=None) -> NotificationResponse:
    response = NotificationResponse.model_validate(notification)
    response.days_until_renewal = days_until_renewal
    return response


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get the notifications for the bell.

    Only undismissed notifications whose send time has passed and whose
    renewal is at most a week away are returned.
    """
    due = list_due_notifications(db, current_user.id, renewal.civil_today())
    items = [_to_response(notification, days) for notification, days in due]
    return NotificationListResponse(
        items=items,
        unread_count=sum(1 for item in items if not item.read),
    )


@router.post("/read-all", response_model=NotificationListResponse)
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Mark every visible notification as read."""
    due = list_due_notifications(db, current_user.id, renewal.civil_today())
    for notification, _ in due:
        mark_notification_read(db, notification)
    return NotificationListResponse(
        items=[_to_response(notification, days) for notification, days in due],
        unread_count=0,
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def read_notification(
    notification: Notification = Depends(get_owned_notification),
    db: Session = Depends(get_db),
):
    """Mark a single notification as read."""
    return _to_response(mark_notification_read(db, notification))


@router.post("/{notification_id}/dismiss", response_model=NotificationResponse)
async def dismiss(
    notification: Notification = Depends(get_owned_notification),
    db: Session = Depends(get_db),
):
    """Dismiss a notification. It will not be shown or generated again."""
    return _to_response(dismiss_notification(db, notification))
