"""Central import of all domain models.

This file imports all models to ensure they are registered with SQLAlchemy's
metadata before any database operations (like creating tables).
"""

# Users domain
from src.domains.users.models import Profile

# Planner domain
from src.domains.planner.models import (
    MindsetLog,
    NotifyBefore,
    Recurrence,
    Todo,
)

# Notifications domain
from src.domains.notifications.models import (
    Notification,
    NotificationType,
    PushSubscription,
)

__all__ = [
    # Users
    "Profile",
    # Planner
    "Todo",
    "MindsetLog",
    "Recurrence",
    "NotifyBefore",
    # Notifications
    "Notification",
    "NotificationType",
    "PushSubscription",
]
