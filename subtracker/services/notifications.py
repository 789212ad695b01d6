"""In-app notification records.

A notification row doubles as the de-duplication record for the in-app and
email channels: one row per subscription and send-at day. Creating the row
is the commit; the email flag is only set after a successful send.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from subtracker.exceptions import DataError
from subtracker.models.notification import Notification, utc_now
from subtracker.models.subscription import Subscription
from subtracker.services import renewal
from subtracker.services.reminder_policy import DueReminder

logger = logging.getLogger(__name__)

# The notification bell only lists renewals this close
VISIBLE_WITHIN_DAYS = 7


def _day_bounds(send_at: datetime) -> tuple[datetime, datetime]:
    day_start = datetime.combine(send_at.date(), time.min, tzinfo=timezone.utc)
    return day_start, day_start + timedelta(days=1)


def notification_exists(
    db: Session, user_id: int, subscription_id: str, send_at: datetime
) -> bool:
    """Check for a notification of this subscription on the same send-at day.

    Dismissed rows count too: dismissing a reminder must not make the next
    daily run recreate it.
    """
    day_start, day_end = _day_bounds(send_at)
    existing = (
        db.query(Notification.id)
        .filter(
            Notification.user_id == user_id,
            Notification.subscription_id == subscription_id,
            Notification.send_at >= day_start,
            Notification.send_at < day_end,
        )
        .first()
    )
    return existing is not None


def generate_in_app_notification(
    db: Session, user_id: int, subscription: Subscription, due: DueReminder
) -> Optional[Notification]:
    """Create and commit the notification for ``due`` unless one exists.

    Returns the new notification, or None when it was already generated.
    """
    if notification_exists(db, user_id, subscription.id, due.send_at):
        logger.debug(
            f"Notification already exists for subscription {subscription.id} "
            f"send_at {due.send_at.date()}"
        )
        return None

    notification = Notification(
        user_id=user_id,
        subscription_id=subscription.id,
        subscription_name=subscription.name,
        subscription_amount=subscription.price,
        due_date=renewal.parse_civil_date(subscription.due_date).isoformat(),
        billing=subscription.billing,
        renewal_date=datetime.combine(due.renewal_date, time.min, tzinfo=timezone.utc),
        send_at=due.send_at,
        notify_days_before=due.threshold,
        read=False,
        dismissed=False,
        email_sent=False,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)

    logger.info(f"Created notification {notification.id} for user {user_id}")
    return notification


def mark_email_sent(db: Session, notification: Notification) -> Notification:
    notification.email_sent = True
    notification.email_sent_at = utc_now()
    db.commit()
    return notification


def delete_notifications_for_subscription(
    db: Session,
    user_id: int,
    subscription_id: str,
    include_dismissed: bool = True,
) -> int:
    """Delete a subscription's notifications and return how many were removed.

    The caller owns the transaction.
    """
    query = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.subscription_id == subscription_id,
    )
    if not include_dismissed:
        query = query.filter(Notification.dismissed == False)  # noqa: E712
    deleted = query.delete(synchronize_session=False)
    if deleted:
        logger.info(
            f"Deleted {deleted} notification(s) for subscription {subscription_id}"
        )
    return deleted


def get_user_notification(
    db: Session, user_id: int, notification_id: int
) -> Optional[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )


def list_due_notifications(
    db: Session, user_id: int, today: date, now: Optional[datetime] = None
) -> list[tuple[Notification, Optional[int]]]:
    """Notifications the bell should show, newest send-at first.

    A notification is due once its send-at instant has passed and it has not
    been dismissed. Days until renewal are recomputed from the snapshot so
    stale renewals drop out of the list.
    """
    now = now or datetime.now(timezone.utc)
    rows = (
        db.query(Notification)
        .filter(
            Notification.user_id == user_id,
            Notification.dismissed == False,  # noqa: E712
            Notification.send_at <= now,
        )
        .order_by(Notification.send_at.desc(), Notification.id.desc())
        .all()
    )

    visible = []
    for notification in rows:
        try:
            days = renewal.days_until_renewal(notification.due_date, notification.billing, today)
        except DataError:
            logger.warning(f"Notification {notification.id} has an invalid due date")
            continue
        if days is not None and 0 <= days <= VISIBLE_WITHIN_DAYS:
            visible.append((notification, days))
    return visible


def mark_notification_read(db: Session, notification: Notification) -> Notification:
    if not notification.read:
        notification.read = True
        notification.read_at = utc_now()
        db.commit()
        db.refresh(notification)
    return notification


def dismiss_notification(db: Session, notification: Notification) -> Notification:
    """Dismiss a notification. Dismissal is permanent."""
    if not notification.dismissed:
        notification.dismissed = True
        notification.dismissed_at = utc_now()
        db.commit()
        db.refresh(notification)
    return notification
