from collections import defaultdict
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import asc, desc
from sqlalchemy.orm import Session

from subtracker.db import get_db
from subtracker.dependencies import get_current_user, get_owned_subscription
from subtracker.exceptions import DataError
from subtracker.models.subscription import Subscription
from subtracker.models.user import User
from subtracker.schemas.subscription import (
    BillingCycle,
    CategorySpend,
    MonthlyExpense,
    SortField,
    SortOrder,
    SubscriptionCreate,
    SubscriptionListResponse,
    SubscriptionResponse,
    SubscriptionStatsResponse,
    SubscriptionUpdate,
    UpcomingSubscription,
    UpcomingSubscriptionListResponse,
)
from subtracker.services import lifecycle, renewal
from subtracker.services.feed import subscription_feed
from subtracker.services.notifications import notification_exists
from subtracker.services.reminder_policy import send_at_for
from subtracker.services.subscriptions import (
    list_user_subscriptions,
    load_snapshot,
    to_response,
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _publish_snapshot(background_tasks: BackgroundTasks, db: Session, user_id: int, today: date):
    """Push the user's current subscriptions to live listeners after the response."""
    background_tasks.add_task(subscription_feed.publish, user_id, load_snapshot(db, user_id, today))


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    subscription_data: SubscriptionCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a new subscription and generate its reminder if one is due."""
    subscription = Subscription(
        user_id=current_user.id,
        name=subscription_data.name,
        price=subscription_data.price,
        billing=subscription_data.billing.value,
        due_date=subscription_data.due_date,
        category=subscription_data.category,
        icon=subscription_data.icon,
        description=subscription_data.description,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)

    today = renewal.civil_today()
    lifecycle.on_subscription_created(db, current_user, subscription, today)

    _publish_snapshot(background_tasks, db, current_user.id, today)
    return to_response(subscription, today)


@router.get("", response_model=SubscriptionListResponse)
async def list_subscriptions(
    background_tasks: BackgroundTasks,
    sort_by: SortField = Query(default=SortField.CREATED_AT, description="Sort field"),
    order: SortOrder = Query(default=SortOrder.DESC, description="Sort order"),
    search: Optional[str] = Query(
        default=None,
        min_length=1,
        max_length=100,
        description="Case-insensitive partial match on subscription name",
    ),
    billing: Optional[BillingCycle] = Query(default=None, description="Filter by billing cycle"),
    category: Optional[str] = Query(default=None, max_length=50, description="Filter by category"),
    limit: int = Query(default=50, ge=1, le=100, description="Page size (max 100)"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the authenticated user's subscriptions with filtering, sorting and pagination."""
    query = db.query(Subscription).filter(Subscription.user_id == current_user.id)

    if search:
        query = query.filter(Subscription.name.ilike(f"%{search}%"))
    if billing:
        query = query.filter(Subscription.billing == billing.value)
    if category:
        query = query.filter(Subscription.category == category)

    total_count = query.count()

    sort_column = getattr(Subscription, sort_by.value)
    if order == SortOrder.DESC:
        query = query.order_by(desc(sort_column), desc(Subscription.id))
    else:
        query = query.order_by(asc(sort_column), asc(Subscription.id))

    subscriptions = query.offset(offset).limit(limit).all()

    today = renewal.civil_today()
    # A dashboard load is a fresh snapshot for live listeners too
    _publish_snapshot(background_tasks, db, current_user.id, today)

    return SubscriptionListResponse(
        items=[to_response(s, today) for s in subscriptions],
        total_count=total_count,
        offset=offset,
        limit=limit,
    )


@router.get("/stats", response_model=SubscriptionStatsResponse)
async def get_subscription_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Monthly and yearly spend, per-category breakdown and this year's monthly expenses."""
    subscriptions = list_user_subscriptions(db, current_user.id)
    current_year = renewal.civil_today().year

    total_monthly = 0.0
    total_yearly = 0.0
    categories: dict[str, float] = defaultdict(float)
    monthly_totals = [0.0] * 12

    for sub in subscriptions:
        monthly_cost = renewal.monthly_equivalent(sub.price, sub.billing)
        total_monthly += monthly_cost
        total_yearly += renewal.yearly_equivalent(sub.price, sub.billing)
        categories[(sub.category or "").strip() or "Uncategorized"] += monthly_cost

        # Subscriptions only count from the month they started in
        start = sub.due_date
        if start.year < current_year:
            active_from = 0
        elif start.year == current_year:
            active_from = start.month - 1
        else:
            active_from = 12
        for month in range(active_from, 12):
            monthly_totals[month] += monthly_cost

    return SubscriptionStatsResponse(
        total_monthly=round(total_monthly, 2),
        total_yearly=round(total_yearly, 2),
        subscription_count=len(subscriptions),
        categories=[
            CategorySpend(name=name, monthly_cost=round(cost, 2))
            for name, cost in sorted(categories.items(), key=lambda item: item[1], reverse=True)
        ],
        monthly_expenses=[
            MonthlyExpense(month=month, total=round(total, 2))
            for month, total in enumerate(monthly_totals)
        ],
        year=current_year,
    )


@router.get("/upcoming", response_model=UpcomingSubscriptionListResponse)
async def get_upcoming_subscriptions(
    days: int = Query(default=7, ge=0, le=90, description="Days to look ahead"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get subscriptions renewing within the specified number of days."""
    today = renewal.civil_today()
    end_date = today + timedelta(days=days)
    reminder_days = lifecycle.reminder_days_for(current_user)

    upcoming_items = []
    for sub in list_user_subscriptions(db, current_user.id):
        try:
            renewal_date = renewal.upcoming_renewal(sub.due_date, sub.billing, today)
        except DataError:
            continue
        if renewal_date is None or renewal_date > end_date:
            continue

        reminder_sent = notification_exists(
            db, current_user.id, sub.id, send_at_for(renewal_date, reminder_days)
        )
        upcoming_items.append(
            UpcomingSubscription(
                id=sub.id,
                name=sub.name,
                price=sub.price,
                billing=sub.billing,
                renewal_date=renewal_date,
                days_until_renewal=renewal.days_until(renewal_date, today),
                reminder_sent=reminder_sent,
            )
        )

    upcoming_items.sort(key=lambda item: (item.renewal_date, item.name))
    return UpcomingSubscriptionListResponse(
        items=upcoming_items,
        total_count=len(upcoming_items),
    )


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(subscription: Subscription = Depends(get_owned_subscription)):
    """Get a single subscription by ID."""
    return to_response(subscription, renewal.civil_today())


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_data: SubscriptionUpdate,
    background_tasks: BackgroundTasks,
    subscription: Subscription = Depends(get_owned_subscription),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a subscription and regenerate its reminders from the new data."""
    update_data = subscription_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field in ("name", "price", "billing", "due_date"):
            continue
        if hasattr(value, "value"):  # Handle enums
            value = value.value
        setattr(subscription, field, value)

    db.commit()
    db.refresh(subscription)

    today = renewal.civil_today()
    lifecycle.on_subscription_updated(db, current_user, subscription, today)

    _publish_snapshot(background_tasks, db, current_user.id, today)
    return to_response(subscription, today)


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    background_tasks: BackgroundTasks,
    subscription: Subscription = Depends(get_owned_subscription),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a subscription together with all of its notifications."""
    subscription_id = subscription.id
    db.delete(subscription)
    db.commit()

    lifecycle.on_subscription_deleted(db, current_user.id, subscription_id)

    _publish_snapshot(background_tasks, db, current_user.id, renewal.civil_today())
    return None
