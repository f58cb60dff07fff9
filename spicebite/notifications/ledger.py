"""
Notification read/unread ledger.

Keeps already-received notifications (newest first) with their read
state, persisted in the local store.
"""

from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from spicebite.schemas.notification import Notification
from spicebite.storage.local_store import LocalStore
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)

NOTIFICATIONS_KEY = "notifications"
MAX_NOTIFICATIONS = 50


class NotificationLedger:
    def __init__(self, store: LocalStore):
        self._store = store
        self._items: List[Notification] = self._load()

    def _load(self) -> List[Notification]:
        items = []
        for record in (self._store.get(NOTIFICATIONS_KEY, []) or [])[:MAX_NOTIFICATIONS]:
            try:
                items.append(Notification.model_validate(record))
            except PydanticValidationError:
                logger.warning("Skipping invalid stored notification")
        return items

    def _save(self) -> None:
        self._store.set(
            NOTIFICATIONS_KEY,
            [item.model_dump(mode="json") for item in self._items],
        )

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for item in self._items if not item.read)

    def record(self, notification: Notification) -> Notification:
        """
        Add a received notification, or update it if its id is known.

        New notifications go to the front of the list; only the newest
        MAX_NOTIFICATIONS are kept.
        """
        for index, existing in enumerate(self._items):
            if existing.id == notification.id:
                self._items[index] = notification
                self._save()
                logger.debug("Notification updated", extra={"notification_id": notification.id})
                return notification

        self._items.insert(0, notification)
        del self._items[MAX_NOTIFICATIONS:]
        self._save()
        logger.info(
            "Notification recorded",
            extra={"notification_id": notification.id, "type": notification.type},
        )
        return notification

    def record_payload(self, payload: Dict[str, Any]) -> Notification:
        return self.record(Notification.model_validate(payload))

    def mark_read(self, notification_id: str) -> bool:
        """
        Mark one notification read.

        Returns:
            True if the notification exists.
        """
        for index, existing in enumerate(self._items):
            if existing.id == notification_id:
                if not existing.read:
                    self._items[index] = existing.model_copy(update={"read": True})
                    self._save()
                return True
        return False

    def mark_all_read(self) -> None:
        self._items = [item.model_copy(update={"read": True}) for item in self._items]
        self._save()

    def clear(self) -> None:
        self._items = []
        self._store.remove(NOTIFICATIONS_KEY)
