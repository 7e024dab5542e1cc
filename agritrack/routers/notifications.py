from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from typing import List, Optional

from agritrack.database import get_db, save
from agritrack.errors import NotFound
from agritrack.models import Farmer, Notification, User
from agritrack.schemas import NotificationRead
from agritrack.security import get_current_user

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def _farmer_id_for(db: Session, user: User) -> Optional[int]:
    farmer = db.exec(select(Farmer).where(Farmer.user_id == user.id)).first()
    return farmer.id if farmer else None


def _to_read(notification: Notification) -> NotificationRead:
    announcement = notification.announcement
    return NotificationRead(
        id=notification.id,
        announcement_id=notification.announcement_id,
        title=announcement.title if announcement else "",
        message=announcement.message if announcement else "",
        status=notification.status,
        created_at=notification.created_at,
    )


@router.get("/", response_model=List[NotificationRead])
def read_my_notifications(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Notifications addressed to the farmer linked to the caller, newest first.
    Callers without a farmer profile get an empty feed.
    """
    farmer_id = _farmer_id_for(db, current_user)
    if farmer_id is None:
        return []

    statement = select(Notification).where(Notification.farmer_id == farmer_id)
    if unread_only:
        statement = statement.where(Notification.status == "unread")
    statement = statement.order_by(Notification.created_at.desc(), Notification.id.desc())
    return [_to_read(n) for n in db.exec(statement).all()]


@router.put("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notification = db.get(Notification, notification_id)
    # Someone else's notification is reported as missing
    if not notification or notification.farmer_id != _farmer_id_for(db, current_user):
        raise NotFound("notification", notification_id)

    notification.status = "read"
    return _to_read(save(db, notification, "update notification"))
