import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from subtracker.config import settings
from subtracker.db import init_db
from subtracker.routers import auth, notifications, subscriptions, users
from subtracker.services.discord import build_discord_notifier
from subtracker.services.feed import subscription_feed
from subtracker.services.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    start_scheduler()

    notifier = build_discord_notifier()
    unsubscribe = subscription_feed.subscribe(notifier.on_snapshot) if notifier else None

    yield

    if unsubscribe is not None:
        unsubscribe()
    if notifier is not None:
        notifier.close()
    stop_scheduler()


app = FastAPI(
    title="SubTracker API",
    description="Subscription tracking with renewal reminders",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(subscriptions.router)
app.include_router(notifications.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
