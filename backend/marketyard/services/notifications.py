"""
In-app notifications.
"""
import logging
from typing import Any, Optional

from marketyard.database import utcnow
from marketyard.exceptions import NotFoundError
from marketyard.schemas import Notification
from marketyard.services.storage import EntityKind, EntityStore, generate_id

logger = logging.getLogger(__name__)


def create_notification(
    store: EntityStore,
    user_id: str,
    notification_type: str,
    title: str,
    message: Optional[str] = None,
    action_url: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None
) -> Notification:
    return store.save(Notification(
        id=generate_id("notification"),
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        action_url=action_url,
        metadata=metadata,
        created_at=utcnow(),
    ))


def get_user_notifications(store: EntityStore, user_id: str, unread_only: bool = False) -> list[Notification]:
    """Newest first."""
    notifications = store.get_notifications_by_user(user_id, unread_only=unread_only)
    return sorted(notifications, key=lambda n: n.created_at, reverse=True)


def get_unread_count(store: EntityStore, user_id: str) -> int:
    return len(store.get_notifications_by_user(user_id, unread_only=True))


def _set_read(store: EntityStore, notification_id: str, is_read: bool) -> Notification:
    with store.transaction():
        notification = store.get_by_id(EntityKind.NOTIFICATIONS, notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if notification.is_read == is_read:
            return notification
        return store.save(notification.model_copy(update={
            "is_read": is_read,
            "read_at": utcnow() if is_read else None,
        }))


def mark_as_read(store: EntityStore, notification_id: str) -> Notification:
    return _set_read(store, notification_id, True)


def mark_as_unread(store: EntityStore, notification_id: str) -> Notification:
    return _set_read(store, notification_id, False)


def mark_all_as_read(store: EntityStore, user_id: str) -> int:
    """Returns how many notifications changed."""
    with store.transaction():
        unread = store.get_notifications_by_user(user_id, unread_only=True)
        now = utcnow()
        for notification in unread:
            store.save(notification.model_copy(update={"is_read": True, "read_at": now}))
    return len(unread)


def delete_notification(store: EntityStore, notification_id: str) -> None:
    store.delete(EntityKind.NOTIFICATIONS, notification_id)


def delete_all_notifications(store: EntityStore, user_id: str) -> int:
    with store.transaction():
        notifications = store.get_notifications_by_user(user_id)
        for notification in notifications:
            store.delete(EntityKind.NOTIFICATIONS, notification.id)
    logger.info(f"Deleted {len(notifications)} notifications of user {user_id}")
    return len(notifications)
