"""Keep in-app reminders in step with subscription writes.

These hooks run after the subscription write has been committed. They are
best-effort: any failure is logged and rolled back, never raised, so a
reminder problem cannot fail the create, update or delete that triggered it.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from subtracker.config import settings
from subtracker.models.notification import Notification
from subtracker.models.subscription import Subscription
from subtracker.models.user import User
from subtracker.services import renewal
from subtracker.services.notifications import (
    delete_notifications_for_subscription,
    generate_in_app_notification,
)
from subtracker.services.reminder_policy import WindowPolicy, evaluate

logger = logging.getLogger(__name__)


def reminder_days_for(user: Optional[User]) -> int:
    if user is None or user.reminder_days is None:
        return settings.default_reminder_days
    return user.reminder_days


def generate_subscription_reminders(
    db: Session, user: User, subscription: Subscription, today: date
) -> list[Notification]:
    """Create the in-app notifications currently due for one subscription."""
    policy = WindowPolicy(reminder_days_for(user))
    created = []
    for due in evaluate(subscription.due_date, subscription.billing, today, policy):
        notification = generate_in_app_notification(db, user.id, subscription, due)
        if notification is not None:
            created.append(notification)
    return created


def on_subscription_created(
    db: Session, user: User, subscription: Subscription, today: Optional[date] = None
) -> list[Notification]:
    today = today or renewal.civil_today()
    try:
        created = generate_subscription_reminders(db, user, subscription, today)
    except Exception:
        logger.exception(
            f"Could not generate notification for new subscription {subscription.id}"
        )
        db.rollback()
        return []
    if created:
        logger.info(f"Notification generated for new subscription {subscription.id}")
    return created


def on_subscription_updated(
    db: Session, user: User, subscription: Subscription, today: Optional[date] = None
) -> list[Notification]:
    """Drop the subscription's active notifications and regenerate them.

    Dismissed notifications are kept; the user already acted on them.
    """
    today = today or renewal.civil_today()
    try:
        delete_notifications_for_subscription(
            db, user.id, subscription.id, include_dismissed=False
        )
        db.commit()
        created = generate_subscription_reminders(db, user, subscription, today)
    except Exception:
        logger.exception(
            f"Could not regenerate notifications for updated subscription {subscription.id}"
        )
        db.rollback()
        return []
    logger.info(f"Notifications regenerated for updated subscription {subscription.id}")
    return created


def on_subscription_deleted(db: Session, user_id: int, subscription_id: str) -> int:
    """Remove every notification of a deleted subscription."""
    try:
        deleted = delete_notifications_for_subscription(db, user_id, subscription_id)
        db.commit()
    except Exception:
        logger.exception(
            f"Could not delete notifications for subscription {subscription_id}"
        )
        db.rollback()
        return 0
    return deleted
