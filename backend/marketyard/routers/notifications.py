from fastapi import APIRouter, Depends, status

from marketyard.routers.deps import get_store
from marketyard.schemas import Notification, NotificationCreate
from marketyard.services import notifications
from marketyard.services.storage import EntityStore

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("", response_model=Notification, status_code=status.HTTP_201_CREATED)
def create(body: NotificationCreate, store: EntityStore = Depends(get_store)):
    data = body.model_dump()
    return notifications.create_notification(
        store,
        data.pop("user_id"),
        data.pop("type"),
        **data
    )


@router.get("/users/{user_id}", response_model=list[Notification])
def list_for_user(user_id: str, unread_only: bool = False, store: EntityStore = Depends(get_store)):
    """Newest first."""
    return notifications.get_user_notifications(store, user_id, unread_only=unread_only)


@router.get("/users/{user_id}/unread-count")
def unread_count(user_id: str, store: EntityStore = Depends(get_store)):
    return {"count": notifications.get_unread_count(store, user_id)}


@router.post("/users/{user_id}/read-all")
def read_all(user_id: str, store: EntityStore = Depends(get_store)):
    return {"updated": notifications.mark_all_as_read(store, user_id)}


@router.delete("/users/{user_id}")
def delete_all(user_id: str, store: EntityStore = Depends(get_store)):
    return {"deleted": notifications.delete_all_notifications(store, user_id)}


@router.post("/{notification_id}/read", response_model=Notification)
def mark_read(notification_id: str, store: EntityStore = Depends(get_store)):
    return notifications.mark_as_read(store, notification_id)


@router.post("/{notification_id}/unread", response_model=Notification)
def mark_unread(notification_id: str, store: EntityStore = Depends(get_store)):
    return notifications.mark_as_unread(store, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete(notification_id: str, store: EntityStore = Depends(get_store)):
    notifications.delete_notification(store, notification_id)
