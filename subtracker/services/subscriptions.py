import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from subtracker.exceptions import DataError
from subtracker.models.subscription import Subscription
from subtracker.schemas.subscription import SubscriptionResponse
from subtracker.services import renewal

logger = logging.getLogger(__name__)


def list_user_subscriptions(db: Session, user_id: int) -> list[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
        .all()
    )


def get_user_subscription(db: Session, user_id: int, subscription_id: str) -> Optional[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.id == subscription_id, Subscription.user_id == user_id)
        .first()
    )


def to_response(subscription: Subscription, today: date) -> SubscriptionResponse:
    """Serialize a subscription with its computed renewal countdown."""
    response = SubscriptionResponse.model_validate(subscription)
    try:
        renewal_date = renewal.upcoming_renewal(subscription.due_date, subscription.billing, today)
    except DataError as e:
        logger.warning(f"Subscription {subscription.id} has invalid renewal data: {e}")
        return response
    if renewal_date is not None:
        response.renewal_date = renewal_date
        response.days_until_renewal = renewal.days_until(renewal_date, today)
    return response


def load_snapshot(db: Session, user_id: int, today: Optional[date] = None) -> list[SubscriptionResponse]:
    """Detached copy of a user's subscriptions, newest first."""
    today = today or renewal.civil_today()
    return [to_response(sub, today) for sub in list_user_subscriptions(db, user_id)]
