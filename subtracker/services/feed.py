"""In-process push feed of subscription snapshots.

Every API call that reads or changes a user's subscriptions publishes the
user's full, current list. Listeners receive it synchronously, in
registration order; a failing listener is logged and does not affect the
others or the publisher.
"""

import logging
import threading
from typing import Callable, Optional

from subtracker.schemas.subscription import SubscriptionResponse

logger = logging.getLogger(__name__)

Listener = Callable[[int, list[SubscriptionResponse]], None]


class SubscriptionFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: list[tuple[Optional[int], Listener]] = []

    def subscribe(self, listener: Listener, user_id: Optional[int] = None) -> Callable[[], None]:
        """Register ``listener`` for one user, or for everyone when user_id is None.

        Returns a function that removes the registration.
        """
        entry = (user_id, listener)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe():
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return unsubscribe

    def publish(self, user_id: int, subscriptions: list[SubscriptionResponse]) -> int:
        """Push a snapshot to matching listeners; return how many were called."""
        with self._lock:
            targets = [
                listener
                for wanted, listener in self._listeners
                if wanted is None or wanted == user_id
            ]

        for listener in targets:
            try:
                listener(user_id, subscriptions)
            except Exception:
                logger.exception(f"Subscription feed listener failed for user {user_id}")
        return len(targets)

    def clear(self):
        with self._lock:
            self._listeners.clear()


subscription_feed = SubscriptionFeed()
