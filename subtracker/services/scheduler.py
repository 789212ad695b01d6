import logging
import time
from datetime import date
from typing import Callable, Optional

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from subtracker.config import settings
from subtracker.db import SessionLocal
from subtracker.exceptions import DataError, FatalScanError
from subtracker.models.subscription import Subscription
from subtracker.models.user import User
from subtracker.schemas.notification import ReminderRunStats
from subtracker.services.email import EmailService, email_service
from subtracker.services.lifecycle import reminder_days_for
from subtracker.services.notifications import generate_in_app_notification, mark_email_sent
from subtracker.services.reminder_policy import WindowPolicy, evaluate
from subtracker.services.renewal import utc_today
from subtracker.services.subscriptions import list_user_subscriptions

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


class _RunBudget:
    def __init__(self, seconds: float, clock: Callable[[], float]):
        self._seconds = seconds
        self._clock = clock
        self._started = clock()

    def exhausted(self) -> bool:
        return self._clock() - self._started >= self._seconds


def run_reminder_scan(
    db: Session,
    today: Optional[date] = None,
    email: Optional[EmailService] = None,
    budget_seconds: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> ReminderRunStats:
    """
    Scan every user's subscriptions and send the reminders that are due.

    A subscription is due while it renews within the user's reminder window
    (0..reminder_days days). The first run inside the window creates the
    in-app notification and sends the email; later runs find the notification
    and do nothing.

    Failures for one user or subscription are counted in ``errors`` and the
    scan moves on. If the time budget runs out, the scan stops between
    subscriptions and returns the partial stats.

    Raises:
        FatalScanError: if the users cannot be listed at all.
    """
    today = today or utc_today()
    email = email or email_service
    budget = _RunBudget(
        settings.reminder_run_budget_seconds if budget_seconds is None else budget_seconds,
        clock,
    )
    stats = ReminderRunStats()

    try:
        user_ids = [user_id for (user_id,) in db.query(User.id).order_by(User.id).all()]
    except Exception as e:
        raise FatalScanError(f"Could not list users: {e}") from e

    logger.info(f"Checking reminders for {len(user_ids)} users on {today}")

    for user_id in user_ids:
        if budget.exhausted():
            logger.warning("Reminder run budget exhausted, returning partial stats")
            break
        stats.users_checked += 1

        try:
            user = db.get(User, user_id)
            if user is None:
                continue
            # Rows are re-fetched per subscription since a rollback expires them
            subscription_ids = [sub.id for sub in list_user_subscriptions(db, user_id)]
        except Exception as e:
            db.rollback()
            logger.error(f"Error processing user {user_id}: {e}")
            stats.errors += 1
            continue

        for subscription_id in subscription_ids:
            if budget.exhausted():
                break
            stats.subscriptions_checked += 1
            try:
                subscription = db.get(Subscription, subscription_id)
                if subscription is None:
                    continue
                process_subscription_reminder(db, subscription, user, today, stats, email)
            except DataError as e:
                db.rollback()
                logger.warning(f"Skipping subscription {subscription_id}: {e}")
                stats.errors += 1
            except Exception as e:
                db.rollback()
                logger.error(f"Error processing subscription {subscription_id}: {e}")
                stats.errors += 1

    logger.info(f"Scheduled reminder check complete: {stats.model_dump()}")
    return stats


def process_subscription_reminder(
    db: Session,
    subscription: Subscription,
    user: User,
    today: date,
    stats: ReminderRunStats,
    email: EmailService,
):
    """Process a single subscription for reminder."""
    policy = WindowPolicy(reminder_days_for(user))

    for due in evaluate(subscription.due_date, subscription.billing, today, policy):
        logger.info(
            f"Subscription {subscription.name} for user {user.id} "
            f"renews in {due.days_until} days"
        )

        notification = generate_in_app_notification(db, user.id, subscription, due)
        if notification is None:
            continue
        stats.notifications_created += 1

        if not user.email or not user.email_notifications_enabled:
            continue

        result = email.send_renewal_reminder(
            to_email=user.email,
            user_name=user.display_name,
            subscription_name=subscription.name,
            amount=subscription.price,
            billing=subscription.billing,
            days_until_renewal=due.days_until,
            renewal_date=due.renewal_date,
            description=subscription.description,
        )
        if result.sent:
            stats.emails_sent += 1
            mark_email_sent(db, notification)
        elif result.failed:
            logger.error(
                f"Error sending email for subscription {subscription.id}: {result.error}"
            )
            stats.errors += 1


def process_renewal_reminders() -> ReminderRunStats:
    """Daily job entry point: run one scan in its own session."""
    logger.info("Starting renewal reminder job")
    db: Session = SessionLocal()
    try:
        return run_reminder_scan(db)
    except Exception:
        logger.exception("Fatal error in renewal reminder job")
        db.rollback()
        raise
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler."""
    if not settings.enable_scheduler:
        logger.info("Scheduler is disabled via configuration")
        return

    if scheduler.running:
        logger.info("Scheduler is already running")
        return

    # Schedule the daily renewal check
    trigger = CronTrigger(
        hour=settings.reminder_check_hour,
        minute=0,
        timezone=pytz.UTC,
    )
    scheduler.add_job(
        process_renewal_reminders,
        trigger=trigger,
        id="renewal_reminders",
        name="Daily Renewal Reminder Check",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"Scheduler started. Renewal check scheduled for {settings.reminder_check_hour}:00 UTC daily"
    )


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
