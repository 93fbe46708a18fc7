"""ChangeNotifier - best-effort push of change hints to connected clients.

Events tell clients *what to re-fetch*, never the new state itself:

    permission:update  {folderPath, folderId?, isRecursive?, isBulk?}
    revoke:access      {folderId}
    gallery:refresh    {path?}

Delivery is fire-and-forget and at-most-once. ``notify`` never raises, so a
failed push can't turn a committed change into an error for its caller.
"""
import logging
from typing import Any, Iterable

from .broker import Event, EventBroker, InMemoryBroker, Scope, Subscription

logger = logging.getLogger(__name__)

PERMISSION_UPDATE = "permission:update"
REVOKE_ACCESS = "revoke:access"
GALLERY_REFRESH = "gallery:refresh"


class ChangeNotifier:
    """Publishes change events through an ``EventBroker``.

    One instance is owned by the application (``app.state.notifier``) and
    handed to services; it is started and closed by the lifespan handler.
    """

    def __init__(self, broker: EventBroker | None = None, queue_size: int = 100):
        self.broker = broker or InMemoryBroker(queue_size=queue_size)
        self._started = False

    async def start(self) -> None:
        self._started = True
        logger.info("Change notifier started (%s)", type(self.broker).__name__)

    async def close(self) -> None:
        self._started = False
        await self.broker.close()

    async def notify(
        self,
        event_type: str,
        scope: Scope = Scope.GLOBAL,
        payload: dict[str, Any] | None = None
    ) -> bool:
        """Publish one event. Returns False when delivery failed."""
        event = Event(event_type=event_type, payload=dict(payload or {}), scope=scope)
        try:
            delivered = await self.broker.publish(event)
        except Exception:
            logger.warning("Failed to publish %s to %s", event_type, scope.room or "all", exc_info=True)
            return False
        logger.debug("Published %s to %s (%d subscribers)", event_type, scope.room or "all", delivered)
        return True

    async def notify_users(
        self,
        event_type: str,
        user_ids: Iterable[int],
        payload: dict[str, Any] | None = None
    ) -> None:
        """Send the same event to the room of each user."""
        for user_id in sorted(set(user_ids)):
            await self.notify(event_type, Scope.user(user_id), payload)

    def subscribe(self, scope: Scope) -> Subscription:
        return self.broker.subscribe(scope)
