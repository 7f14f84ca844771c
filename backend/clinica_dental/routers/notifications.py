from fastapi import APIRouter, Depends, HTTPException, Query, status

from clinica_dental.deps import get_current_user, get_notification_store
from clinica_dental.models.user import User
from clinica_dental.schemas.notification import NotificationCreate, NotificationOut
from clinica_dental.services.notifications import Notification, NotificationStore

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    unread_only: bool = Query(default=False),
    store: NotificationStore = Depends(get_notification_store),
    _user: User = Depends(get_current_user),
):
    return store.list(unread_only=unread_only)


@router.post("", response_model=NotificationOut, status_code=status.HTTP_201_CREATED)
def add_notification(
    payload: NotificationCreate,
    store: NotificationStore = Depends(get_notification_store),
    user: User = Depends(get_current_user),
):
    return store.add(
        Notification(
            title=payload.title,
            message=payload.message,
            kind=payload.kind,
            link=payload.link,
            user_id=user.id,
        )
    )


@router.post("/read-all")
def mark_all_notifications_read(
    store: NotificationStore = Depends(get_notification_store),
    _user: User = Depends(get_current_user),
):
    return {"updated": store.mark_all_read()}


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(
    notification_id: str,
    store: NotificationStore = Depends(get_notification_store),
    _user: User = Depends(get_current_user),
):
    if not store.mark_read(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_notification(
    notification_id: str,
    store: NotificationStore = Depends(get_notification_store),
    _user: User = Depends(get_current_user),
):
    if not store.remove(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_notifications(
    store: NotificationStore = Depends(get_notification_store),
    _user: User = Depends(get_current_user),
):
    store.clear()
