from subtracker.models.notification import Notification
from subtracker.models.subscription import Subscription
from subtracker.models.user import User

__all__ = ["Notification", "Subscription", "User"]
