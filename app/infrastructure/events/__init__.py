"""Real-time change events."""
from .broker import (
    BrokerClosed, Event, EventBroker, InMemoryBroker, Scope, Subscription,
)
from .notifier import (
    ChangeNotifier, PERMISSION_UPDATE, REVOKE_ACCESS, GALLERY_REFRESH,
)

__all__ = [
    "BrokerClosed",
    "Event",
    "EventBroker",
    "InMemoryBroker",
    "Scope",
    "Subscription",
    "ChangeNotifier",
    "PERMISSION_UPDATE",
    "REVOKE_ACCESS",
    "GALLERY_REFRESH",
]
